"""
errors.py
=========
Exception and diagnostic taxonomy.

Construction mistakes (a bad k, a bad pipeline config) raise ConfigError.
Everything else is reported, not raised: the operation emits a warning whose
category names the failure kind and returns a neutral value ([] / None /
False / an empty table).

    MixedKNNWarning
        ├─ SchemaWarning  unknown column, label unset, table never normalized
        ├─ BoundsWarning  row index, split ratio, k, point width out of range
        └─ LoadWarning    unreadable source
"""

from __future__ import annotations

import warnings


class MixedKNNError(Exception):
    pass


class ConfigError(MixedKNNError):
    pass


class MixedKNNWarning(UserWarning):
    kind: str = "generic"


class SchemaWarning(MixedKNNWarning):
    kind = "schema"


class BoundsWarning(MixedKNNWarning):
    kind = "bounds"


class LoadWarning(MixedKNNWarning):
    kind = "io"


def report(message: str, category: type[MixedKNNWarning]) -> None:
    # stacklevel=3 points at the caller of the failing public method
    warnings.warn(message, category, stacklevel=3)
