"""Validator — check that the masterlist on disk parses.

Only "does it load" matters here; the document's meaning is the consumer's
business. The synchronizer accepts any callable with the same signature as
``validate_masterlist`` so a stricter parser can be swapped in.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import yaml

from mlsync.models import ValidationResult

logger = logging.getLogger(__name__)

Validator = Callable[[Path], ValidationResult]


def validate_masterlist(masterlist_path: str | Path) -> ValidationResult:
    """Try to load the masterlist as YAML.

    Never modifies the file or its repository. Returns a passing result, or
    a failing one carrying PyYAML's message and, when available, the 1-based
    line and column of the problem.
    """
    path = Path(masterlist_path)

    if not path.is_file():
        return ValidationResult(passed=False, message=f"File not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            yaml.safe_load(f)
    except yaml.MarkedYAMLError as e:
        mark = e.problem_mark or e.context_mark
        message = _describe(e)
        if mark is None:
            return ValidationResult(passed=False, message=message)
        return ValidationResult(
            passed=False,
            message=message,
            line=mark.line + 1,
            column=mark.column + 1,
        )
    except yaml.YAMLError as e:
        return ValidationResult(passed=False, message=f"Invalid YAML: {e}")
    except UnicodeDecodeError as e:
        return ValidationResult(passed=False, message=f"Not valid UTF-8: {e}")
    except OSError as e:
        return ValidationResult(passed=False, message=f"Could not read {path}: {e}")

    logger.debug("Masterlist at %s parsed successfully", path)
    return ValidationResult(passed=True)


def _describe(error: yaml.MarkedYAMLError) -> str:
    parts = [p for p in (error.context, error.problem) if p]
    return "; ".join(parts) if parts else str(error)
