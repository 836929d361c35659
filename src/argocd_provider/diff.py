# ABOUTME: Up-to-date check between desired parameters and observed remote state
# ABOUTME: Field-by-field comparison where unset desired fields are ignored

"""
Decide whether an external resource matches its desired parameters.

Rules:
    - A field that is None in the desired model is "don't care".
    - Nested models are compared field by field with the same rule.
    - Lists of models are compared element by element with the same rule
      when both sides have the same length; other lists and dicts are
      compared by content.
    - Zero values (empty list, dict, or string, False, 0) equal an absent
      field. Argo CD omits them from its responses.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


def _normalize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, dict):
        normalized = {k: _normalize(v) for k, v in value.items()}
        return {k: v for k, v in normalized.items() if v is not None} or None
    if isinstance(value, (list, tuple)):
        value = [_normalize(v) for v in value]
        return value or None
    if isinstance(value, (str, bool, int, float)) and not value:
        return None
    return value


def _model_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and bool(value) and all(
        isinstance(v, BaseModel) for v in value
    )


def changed_fields(desired: BaseModel, observed: BaseModel | None, prefix: str = "") -> list[str]:
    """
    List the desired fields whose observed value differs.

    Returns dotted field paths, e.g. ``["description", "syncPolicy.applicationsSync"]``.
    Elements of model lists are compared position by position, so their
    paths carry an index: ``["roles[0].policies"]``. An observed model of
    None differs in every field that is set.
    """
    changed: list[str] = []
    for name, info in type(desired).model_fields.items():
        want = getattr(desired, name)
        if want is None:
            continue
        path = f"{prefix}{info.alias or name}"
        have = getattr(observed, name, None) if observed is not None else None

        if isinstance(want, BaseModel) and (have is None or isinstance(have, BaseModel)):
            changed.extend(changed_fields(want, have, prefix=f"{path}."))
            continue

        if _model_list(want) and _model_list(have) and len(want) == len(have):
            for i, (w, h) in enumerate(zip(want, have)):
                changed.extend(changed_fields(w, h, prefix=f"{path}[{i}]."))
            continue

        if _normalize(want) != _normalize(have):
            changed.append(path)
    return changed


def is_up_to_date(desired: BaseModel, observed: BaseModel | None) -> bool:
    return not changed_fields(desired, observed)
