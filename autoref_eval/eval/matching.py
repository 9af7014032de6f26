from __future__ import annotations

from collections.abc import Sequence

from autoref_eval.eval.schemas import Classification, Evaluation, RefereeEvent

HUMAN_TO_AUTO_DELAY_US = 0
AUTO_TO_HUMAN_DELAY_US = 2_000_000


def before(e1: RefereeEvent, e2: RefereeEvent, tolerance: int) -> bool:
    """True iff e1 was commanded before e2's STOP, allowing ``tolerance`` us.

    A threshold below zero is never reached, so it counts as "not before".
    """
    threshold = e2.stop_timestamp - tolerance
    if threshold < 0:
        return False
    return e1.command_timestamp < threshold


def align_events(
    human: Sequence[RefereeEvent],
    automatic: Sequence[RefereeEvent],
    *,
    human_to_auto_delay: int = HUMAN_TO_AUTO_DELAY_US,
    auto_to_human_delay: int = AUTO_TO_HUMAN_DELAY_US,
    flush_trailing: bool = True,
) -> list[Evaluation]:
    """Classify one automatic referee's events against the human reference.

    A single cursor walks the human events forward, so each human event is
    reported at most once and the work is linear in both list lengths. Human
    events skipped because their command differs from an overlapping automatic
    event are consumed without a classification. With ``flush_trailing`` the
    human events still ahead of the cursor at the end are false negatives.
    """
    evaluations: list[Evaluation] = []
    k = 0
    n = len(human)

    for auto in automatic:
        resolved = False
        while k < n:
            ref = human[k]
            if before(ref, auto, human_to_auto_delay):
                evaluations.append(Evaluation(Classification.FALSE_NEGATIVE, human_event=ref))
                k += 1
            elif before(auto, ref, auto_to_human_delay):
                # ref stays available for a later automatic event.
                evaluations.append(Evaluation(Classification.FALSE_POSITIVE, automatic_event=auto))
                resolved = True
                break
            elif ref.code == auto.code:
                evaluations.append(
                    Evaluation(Classification.TRUE_POSITIVE, automatic_event=auto, human_event=ref)
                )
                k += 1
                resolved = True
                break
            else:
                k += 1

        if not resolved:
            # No ground truth left to compare against.
            evaluations.append(Evaluation(Classification.FALSE_POSITIVE, automatic_event=auto))

    if flush_trailing:
        evaluations.extend(
            Evaluation(Classification.FALSE_NEGATIVE, human_event=ref) for ref in human[k:]
        )
    return evaluations
