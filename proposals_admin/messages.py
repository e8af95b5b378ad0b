"""
Flash messages of the admin proposal actions.

Messages are keyed like translation keys so a translation backend can be
plugged in later; only English is shipped.
"""

from collections.abc import Sequence

MESSAGES = {
    "proposals.create.success": "Proposal successfully created.",
    "proposals.create.invalid": "There was a problem creating this proposal.",
    "proposals.update.success": "Proposal successfully updated.",
    "proposals.update.error": "There was a problem saving the proposal.",
    "proposals.update_category.select_a_category": "Please select a category.",
    "proposals.update_category.select_a_proposal": "Please select a proposal.",
    "proposals.update_category.success": (
        "Proposals successfully updated to the {subject_name} category: {proposals}."
    ),
    "proposals.update_category.invalid": (
        "These proposals already had the {subject_name} category: {proposals}."
    ),
    "proposals.update_scope.select_a_scope": "Please select a scope.",
    "proposals.update_scope.select_a_proposal": "Please select a proposal.",
    "proposals.update_scope.success": (
        "Proposals successfully updated to the {subject_name} scope: {proposals}."
    ),
    "proposals.update_scope.invalid": (
        "These proposals already had the {subject_name} scope: {proposals}."
    ),
    "proposal_answers.create.success": "Proposal successfully answered.",
    "proposal_answers.create.invalid": "There was a problem answering this proposal.",
    "proposals.publish_answers.success": "Proposal answers successfully published.",
    "proposals.publish_answers.select_a_proposal": "Please select a proposal.",
    "proposal_notes.create.success": "Proposal note successfully created.",
    "proposal_notes.create.error": "There was a problem creating this proposal note.",
}


def t(key: str, **values: object) -> str:
    """Message for ``key`` with ``values`` interpolated."""
    return MESSAGES[key].format(**values)


def to_sentence(items: Sequence[str]) -> str:
    """Join items as an English sentence: "a", "a and b", "a, b, and c"."""
    items = [str(item) for item in items]
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return f"{', '.join(items[:-1])}, and {items[-1]}"
