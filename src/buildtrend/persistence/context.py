"""Build context detection from the CI environment."""

import os
from collections.abc import Mapping
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError

from buildtrend.exceptions import ValidationError
from buildtrend.models.metrics import BuildContext

_REF_PREFIXES = ("refs/heads/", "refs/tags/")


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if not value:
        msg = f"Required environment variable {name} is missing"
        raise ValidationError(msg, code="MISSING_CI_CONTEXT", details={"variable": name})
    return value


def branch_from_ref(ref: str) -> str:
    """Strip the refs/heads/ or refs/tags/ prefix from a git ref."""
    for prefix in _REF_PREFIXES:
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref


def detect_build_context(
    env: Mapping[str, str] | None = None,
    now: datetime | None = None,
) -> BuildContext:
    """Build a BuildContext from GitHub Actions environment variables.

    Args:
        env: Environment mapping (defaults to os.environ).
        now: Build timestamp (defaults to the current time).

    Returns:
        The detected build context.

    Raises:
        ValidationError: If a required variable is missing or malformed.
    """
    env = os.environ if env is None else env

    commit_sha = _require(env, "GITHUB_SHA")
    ref = _require(env, "GITHUB_REF")
    run_id = _require(env, "GITHUB_RUN_ID")
    run_number_raw = _require(env, "GITHUB_RUN_NUMBER")

    try:
        run_number = int(run_number_raw)
    except ValueError as e:
        msg = f"GITHUB_RUN_NUMBER must be a valid integer, got: {run_number_raw}"
        raise ValidationError(msg, code="MISSING_CI_CONTEXT") from e

    try:
        return BuildContext(
            commit_sha=commit_sha,
            branch=branch_from_ref(ref),
            run_id=run_id,
            run_number=run_number,
            timestamp=now or datetime.now(UTC),
            actor=env.get("GITHUB_ACTOR") or None,
            event_name=env.get("GITHUB_EVENT_NAME") or None,
        )
    except PydanticValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        msg = f"Invalid build context from CI environment: {', '.join(fields)}"
        raise ValidationError(msg, code="MISSING_CI_CONTEXT", details={"fields": fields}) from e
