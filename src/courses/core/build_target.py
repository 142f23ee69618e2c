from enum import Enum

from courses.processing.exercises import ExerciseMode


class BuildTarget(Enum):
    """The two outputs produced from every document.

    WEB renders HTML pages into `build/web` and keeps exercise solutions.
    NOTEBOOK emits redistributable sources into `build/source` with exercise
    solutions replaced by placeholders.
    """

    WEB = "web"
    NOTEBOOK = "source"

    @property
    def output_dir_name(self) -> str:
        return self.value

    @property
    def shortcode_kind(self) -> str:
        return "html" if self is BuildTarget.WEB else "md"

    @property
    def exercise_mode(self) -> ExerciseMode:
        if self is BuildTarget.WEB:
            return ExerciseMode.SOLUTION
        return ExerciseMode.PLACEHOLDER
