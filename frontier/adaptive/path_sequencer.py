"""
Learning Path Sequencer.

Picks the next concept once the current one is mastered: the first
prerequisite successor the student has not yet mastered.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from frontier.core.mastery import ADVANCE_THRESHOLD, MasteryRecord
from frontier.curriculum.models import ConceptNode


def recommend_next_concept(
    successors: Sequence[ConceptNode],
    records: Mapping[str, MasteryRecord],
    threshold: float = ADVANCE_THRESHOLD,
) -> ConceptNode | None:
    """
    Recommend the next concept to learn.

    Args:
        successors: Concepts unlocked by the current one, in catalog order
        records: Mastery records by concept code
        threshold: Probability at which a concept counts as mastered

    Returns:
        First successor below the threshold (unseen counts as below), the
        first successor if all are mastered, or None without successors
    """
    if not successors:
        return None

    for node in successors:
        record = records.get(node.code)
        if record is None or record.probability < threshold:
            return node
    # Everything mastered; keep moving forward anyway
    return successors[0]
