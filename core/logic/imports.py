"""
Legacy Import Outcome Rules.

Exports:
    determine_import_status: Status for a file given its row counts
"""

from ..models.enums import ImportStatus


def determine_import_status(published: int, rejected: int) -> ImportStatus:
    """
    Derive the audit status of one imported file.

    Args:
        published: Rows successfully handed to the queue
        rejected: Rows that failed parsing or validation

    Returns:
        SUCCESS if every row was published, PARTIAL if some were rejected,
        FAILED if nothing was published
    """
    if published <= 0:
        return ImportStatus.FAILED
    if rejected > 0:
        return ImportStatus.PARTIAL
    return ImportStatus.SUCCESS
