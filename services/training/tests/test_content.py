import json

from trainhub.quiz.content import (
    ChoiceQuestion,
    FreeFormQuestion,
    InvalidQuizContent,
    QuizOption,
    parse_quiz_content,
    resolve_correct_index,
)


def _choice(correct, options=("Paris", "London", "Berlin")) -> ChoiceQuestion:
    return ChoiceQuestion(
        id="q1",
        type="multiple_choice",
        question="Capital of France?",
        options=tuple(QuizOption(id=f"o{i}", text=t) for i, t in enumerate(options)),
        correct_answer=correct,
    )


def test_parse_list_of_questions() -> None:
    parsed = parse_quiz_content([
        {"id": "q1", "question": "Pick one", "options": ["a", "b"], "correctAnswer": 1},
        {"id": "q2", "type": "short_answer", "question": "Name it", "correct_answer": "CPR"},
    ])
    assert isinstance(parsed, list)
    choice, free = parsed
    assert isinstance(choice, ChoiceQuestion)
    assert [o.id for o in choice.options] == ["opt-q1-0", "opt-q1-1"]
    assert choice.type == "multiple_choice"
    assert isinstance(free, FreeFormQuestion)
    assert free.correct_answer == "CPR"


def test_parse_json_text_and_wrapped_object() -> None:
    payload = {"questions": [{"id": "q1", "options": [{"id": "a", "text": "A"}], "correctAnswer": "a"}]}
    from_text = parse_quiz_content(json.dumps(payload))
    from_dict = parse_quiz_content(payload)
    assert from_text == from_dict
    assert from_dict[0].options == (QuizOption(id="a", text="A"),)


def test_missing_id_gets_positional_id() -> None:
    parsed = parse_quiz_content([{"question": "?", "options": ["x"]}])
    assert parsed[0].id == "q-0"


def test_invalid_payloads_are_values_not_exceptions() -> None:
    assert isinstance(parse_quiz_content("{not json"), InvalidQuizContent)
    assert isinstance(parse_quiz_content(42), InvalidQuizContent)
    assert isinstance(parse_quiz_content(None), InvalidQuizContent)
    assert isinstance(parse_quiz_content(["just a string"]), InvalidQuizContent)


def test_empty_list_parses_to_empty() -> None:
    assert parse_quiz_content([]) == []


def test_resolve_correct_index_forms() -> None:
    assert resolve_correct_index(_choice(2)) == 2
    assert resolve_correct_index(_choice("1")) == 1
    assert resolve_correct_index(_choice("o2")) == 2
    assert resolve_correct_index(_choice("London")) == 1
    assert resolve_correct_index(_choice("  paris ")) == 0


def test_numeric_string_out_of_range_matches_option_text() -> None:
    assert resolve_correct_index(_choice("4", options=("3", "4", "5"))) == 1
    assert resolve_correct_index(_choice("2", options=("3", "4", "5"))) == 2


def test_resolve_correct_index_failures() -> None:
    assert resolve_correct_index(_choice(5)) is None
    assert resolve_correct_index(_choice("-1")) is None
    assert resolve_correct_index(_choice("7")) is None
    assert resolve_correct_index(_choice("Rome")) is None
    assert resolve_correct_index(_choice(None)) is None
    assert resolve_correct_index(_choice(True)) is None
