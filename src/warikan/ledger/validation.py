"""Structural checks a caller runs before trusting a project snapshot."""

from ..models import Project


def validate_project(project: Project) -> list[str]:
    """
    List references to members or categories the project does not have.

    The ledger engine tolerates all of these (it drops unknown ids), so this
    is for callers that want to reject broken data instead.

    Args:
        project: Project snapshot

    Returns:
        Human-readable problems, empty when the snapshot is consistent
    """
    member_ids = {m.id for m in project.members}
    category_ids = {c.id for c in project.categories}
    problems: list[str] = []

    for expense in project.expenses:
        label = expense.title or expense.id
        if expense.payer_id not in member_ids:
            problems.append(
                f"Expense '{label}' has unknown payer {expense.payer_id}"
            )
        for share in expense.shares:
            if share.member_id not in member_ids:
                problems.append(
                    f"Expense '{label}' has a share for unknown member "
                    f"{share.member_id}"
                )
        if expense.category_id and expense.category_id not in category_ids:
            problems.append(
                f"Expense '{label}' has unknown category {expense.category_id}"
            )

    for adjustment in project.adjustments:
        label = adjustment.reason or adjustment.id
        for side, member_id in (("from", adjustment.from_id), ("to", adjustment.to_id)):
            if member_id is not None and member_id not in member_ids:
                problems.append(
                    f"Adjustment '{label}' has unknown {side} member {member_id}"
                )

    return problems
