from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Any, Mapping, Optional, Sequence

from pynvim_pp.lib import decode
from std2.graphlib import merge
from std2.pickle.decoder import new_decoder
from std2.pickle.types import DecodeError
from yaml import safe_load

from ..consts import CONFIG_YML


class ValidationError(Exception):
    ...


@dataclass(frozen=True)
class SnippetOptions:
    directories: Sequence[str]
    extends: Mapping[str, Sequence[str]]
    exts: AbstractSet[str]


@dataclass(frozen=True)
class MatchOptions:
    unifying_chars: AbstractSet[str]


@dataclass(frozen=True)
class EvaluatorOptions:
    python: str
    timeout: float


@dataclass(frozen=True)
class Settings:
    snippets: SnippetOptions
    match: MatchOptions
    evaluator: EvaluatorOptions


def load_settings(
    user_config: Optional[Path] = None, overrides: Optional[Mapping[str, Any]] = None
) -> Settings:
    yml = safe_load(decode(CONFIG_YML.read_bytes()))
    u_conf = safe_load(decode(user_config.read_bytes())) if user_config else None

    merged = merge(yml, u_conf or {}, replace=True)
    merged = merge(merged, overrides or {}, replace=True)

    try:
        config = new_decoder[Settings](Settings)(merged)
    except DecodeError as e:
        raise ValidationError(e) from e

    if config.evaluator.timeout <= 0:
        raise ValidationError("evaluator.timeout <= 0")

    return config
