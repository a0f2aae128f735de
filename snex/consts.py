from os import environ
from pathlib import Path

TOP_LEVEL = Path(__file__).resolve().parent

_CONF_DIR = TOP_LEVEL / "config"
CONFIG_YML = _CONF_DIR / "defaults.yml"

RUNNER_PY = TOP_LEVEL / "evaluator" / "runner.py"

DEBUG = "SNEX_DEBUG" in environ

ALL_SCOPE = "all"

SNIP_LINE_SEP = "\n"
