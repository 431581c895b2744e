from ..core.models import Language
from .base import Runner


class PythonRunner(Runner):
    language = Language.PYTHON
    default_suffix = ".py"
    default_env = {"PYTHONUNBUFFERED": "1", "PYTHONIOENCODING": "utf-8"}
