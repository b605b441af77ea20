"""Pure training progress calculation — no I/O, no framework imports.

A training has up to three components: video, quiz and mini-trainings. Each
present component gets a share of 100 according to the weight policy:

  equal     every present component gets the same share (default)
  priority  video > quiz > mini-trainings
              video+quiz+mini  50/30/20
              video+quiz       50/50
              video+mini       60/40
              quiz+mini        60/40
              single component 100

Component ratios, all in [0.0, 1.0]:
  video  min(watched_secs / required_watch_secs, 1)
  quiz   1 when a passing attempt exists, else 0
  mini   completed / total, or the mean partial credit when per-mini-training
         detail is supplied (70% video / 30% quiz inside each mini-training)

A training is completed only when every present gate is fully satisfied; a
completed training reports exactly 100 and an incomplete one at most 99.99.
"""

import logging
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger(__name__)

WeightPolicy = Literal["equal", "priority"]

VIDEO = "video"
QUIZ = "quiz"
MINI = "mini"

PRIORITY_WEIGHTS: dict[frozenset[str], dict[str, float]] = {
    frozenset({VIDEO, QUIZ, MINI}): {VIDEO: 0.5, QUIZ: 0.3, MINI: 0.2},
    frozenset({VIDEO, QUIZ}): {VIDEO: 0.5, QUIZ: 0.5},
    frozenset({VIDEO, MINI}): {VIDEO: 0.6, MINI: 0.4},
    frozenset({QUIZ, MINI}): {QUIZ: 0.6, MINI: 0.4},
    frozenset({VIDEO}): {VIDEO: 1.0},
    frozenset({QUIZ}): {QUIZ: 1.0},
    frozenset({MINI}): {MINI: 1.0},
}

MAX_INCOMPLETE_PROGRESS = 99.99


@dataclass
class WeightConfig:
    """Training progress weight configuration.

    Callers that omit ``config=`` use DEFAULT_WEIGHT_CONFIG; the service layer
    builds one from Settings.
    """

    policy: WeightPolicy = "equal"
    # Fraction of the video that counts as watched when no minimum is set
    video_completion_ratio: float = 0.9
    # Split inside a single mini-training
    mini_video_weight: float = 0.7
    mini_quiz_weight: float = 0.3


DEFAULT_WEIGHT_CONFIG = WeightConfig()


@dataclass(frozen=True)
class TrainingDefinition:
    """Static shape of a training as currently authored."""

    video_duration_secs: int | None = None
    minimum_watch_secs: int | None = None
    has_quiz: bool = False
    mini_training_count: int = 0

    @property
    def has_video(self) -> bool:
        return bool(self.video_duration_secs) and self.video_duration_secs > 0

    @property
    def has_mini_trainings(self) -> bool:
        return self.mini_training_count > 0


@dataclass(frozen=True)
class MiniTrainingState:
    """One learner's state on one mini-training, for partial credit."""

    is_completed: bool
    video_progress: float = 0.0  # 0-100
    quiz_completed: bool = False
    has_video: bool = True
    has_quiz: bool = False


@dataclass(frozen=True)
class ProgressSignals:
    """Raw learner signals for one training."""

    video_watched_secs: int = 0
    quiz_passed: bool = False
    mini_trainings_completed: int = 0
    # Optional detail; when given it takes precedence over the count
    mini_trainings: tuple[MiniTrainingState, ...] | None = field(default=None)


@dataclass(frozen=True)
class TrainingProgressResult:
    progress: float
    is_completed: bool
    video_progress: float
    mini_trainings_completed: int
    total_mini_trainings: int


@dataclass(frozen=True)
class MiniTrainingEvaluation:
    video_progress: float
    is_completed: bool


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def required_watch_secs(
    video_duration_secs: int | None,
    minimum_watch_secs: int | None,
    config: WeightConfig = DEFAULT_WEIGHT_CONFIG,
) -> float:
    if minimum_watch_secs and minimum_watch_secs > 0:
        return float(minimum_watch_secs)
    return (video_duration_secs or 0) * config.video_completion_ratio


def video_ratio(
    watched_secs: int,
    video_duration_secs: int | None,
    minimum_watch_secs: int | None = None,
    config: WeightConfig = DEFAULT_WEIGHT_CONFIG,
) -> float:
    """Watched fraction of the required watch time, capped at 1.0."""
    required = required_watch_secs(video_duration_secs, minimum_watch_secs, config)
    if required <= 0:
        return 0.0
    return _clamp(max(watched_secs or 0, 0) / required)


def component_weights(components: frozenset[str], policy: WeightPolicy) -> dict[str, float]:
    if not components:
        return {}
    if policy == "priority":
        return PRIORITY_WEIGHTS[components]
    share = 1.0 / len(components)
    return {c: share for c in components}


def mini_training_credit(state: MiniTrainingState, config: WeightConfig = DEFAULT_WEIGHT_CONFIG) -> float:
    """Partial credit in [0.0, 1.0] for a single mini-training."""
    if state.is_completed:
        return 1.0
    earned = 0.0
    possible = 0.0
    if state.has_video:
        earned += _clamp(state.video_progress / 100.0) * config.mini_video_weight
        possible += config.mini_video_weight
    if state.has_quiz:
        if state.quiz_completed:
            earned += config.mini_quiz_weight
        possible += config.mini_quiz_weight
    return earned / possible if possible > 0 else 0.0


def _mini_ratio(
    signals: ProgressSignals, total: int, config: WeightConfig,
) -> tuple[float, int]:
    if signals.mini_trainings is not None:
        states = signals.mini_trainings[:total]
        completed = sum(1 for s in states if s.is_completed)
        credit = sum(mini_training_credit(s, config) for s in states)
        return _clamp(credit / total), completed

    completed = max(signals.mini_trainings_completed or 0, 0)
    if completed > total:
        logger.warning(
            "Mini-trainings completed (%d) exceeds total (%d); clamping", completed, total,
        )
        completed = total
    return completed / total, completed


def calculate_training_progress(
    signals: ProgressSignals,
    definition: TrainingDefinition,
    config: WeightConfig = DEFAULT_WEIGHT_CONFIG,
) -> TrainingProgressResult:
    """Derive progress and completion for one learner on one training."""
    total_minis = max(definition.mini_training_count, 0)

    components = set()
    if definition.has_video:
        components.add(VIDEO)
    if definition.has_quiz:
        components.add(QUIZ)
    if total_minis > 0:
        components.add(MINI)

    if not components:
        return TrainingProgressResult(
            progress=0.0,
            is_completed=False,
            video_progress=0.0,
            mini_trainings_completed=0,
            total_mini_trainings=0,
        )

    ratios: dict[str, float] = {}
    gates: list[bool] = []
    mini_completed = 0

    if VIDEO in components:
        ratios[VIDEO] = video_ratio(
            signals.video_watched_secs,
            definition.video_duration_secs,
            definition.minimum_watch_secs,
            config,
        )
        gates.append(ratios[VIDEO] >= 1.0)
    if QUIZ in components:
        ratios[QUIZ] = 1.0 if signals.quiz_passed else 0.0
        gates.append(signals.quiz_passed)
    if MINI in components:
        ratios[MINI], mini_completed = _mini_ratio(signals, total_minis, config)
        gates.append(mini_completed >= total_minis)

    weights = component_weights(frozenset(components), config.policy)
    raw = sum(weights[c] * ratios[c] for c in components) * 100.0

    is_completed = all(gates)
    if is_completed:
        progress = 100.0
    else:
        progress = min(round(_clamp(raw, 0.0, 100.0), 2), MAX_INCOMPLETE_PROGRESS)

    return TrainingProgressResult(
        progress=progress,
        is_completed=is_completed,
        video_progress=round(ratios.get(VIDEO, 0.0) * 100.0, 2),
        mini_trainings_completed=mini_completed,
        total_mini_trainings=total_minis,
    )


def evaluate_mini_training(
    video_duration_secs: int | None,
    watched_secs: int,
    *,
    has_quiz: bool,
    quiz_passed: bool,
    config: WeightConfig = DEFAULT_WEIGHT_CONFIG,
) -> MiniTrainingEvaluation:
    """Completion of one mini-training: video watched (if any) and mini-quiz passed (if any)."""
    has_video = bool(video_duration_secs) and video_duration_secs > 0
    ratio = video_ratio(watched_secs, video_duration_secs, None, config) if has_video else 0.0
    video_done = ratio >= 1.0 if has_video else True
    quiz_done = quiz_passed if has_quiz else True
    return MiniTrainingEvaluation(
        video_progress=round(ratio * 100.0, 2),
        is_completed=video_done and quiz_done,
    )
