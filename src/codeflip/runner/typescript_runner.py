from ..core.models import Language
from .base import Runner


class TypeScriptRunner(Runner):
    """tsx transpiles and runs the file in one step, so there is no compile stage."""

    language = Language.TYPESCRIPT
    default_suffix = ".ts"
    default_env = {"NO_COLOR": "1", "FORCE_COLOR": "0"}
