"""Collision-free instance labels.

Linode labels are capped at 32 characters. Normalized prefixes are cut
to 30 so a two-digit suffix always fits.
"""

from __future__ import annotations

import random
from functools import partial

from kitchen_linode.base.compute import ComputeBlueprint
from kitchen_linode.base.exceptions import LabelExhausted
from kitchen_linode.base.logger import DriverLogger, kl_logger
from kitchen_linode.base.retry import RetryPolicy, execute

SUFFIX_COUNT = 100


def _label_taken(compute: ComputeBlueprint, label: str) -> bool:
    return any(instance.get("label") == label for instance in compute.list_instances())


def generate_unique_label(
    compute: ComputeBlueprint,
    prefix: str,
    policy: RetryPolicy,
    *,
    logger: DriverLogger = kl_logger,
    rng: random.Random | None = None,
) -> str:
    """Return ``prefix`` plus a two-digit suffix no instance currently uses.

    Suffixes 00-99 are tried in random order, each checked against the
    account's instances under *policy*.

    Raises:
        LabelExhausted: If all 100 candidates are taken. The account needs
            cleaning up; retrying will not help.
    """
    rng = rng or random.Random()
    for suffix in rng.sample(range(SUFFIX_COUNT), SUFFIX_COUNT):
        label = f"{prefix}{suffix:02d}"
        if not execute(partial(_label_taken, compute, label), policy):
            return label
    logger.error(
        f"Unable to generate a unique label with prefix {prefix}. "
        "Might need to cleanup your account.",
        label=prefix,
        operation="generate_label",
    )
    raise LabelExhausted(f"Unable to generate a unique label with prefix {prefix}.")
