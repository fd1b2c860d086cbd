"""Choosing which version of a track to show"""
from typing import Optional, Sequence


def select_version(versions: Sequence, pinned_number: Optional[int] = None):
    """
    Pick the version a track page should display

    A pinned version number (e.g. from a link) wins while that version
    exists, even after a collaborator uploads a newer master. Otherwise the
    master is shown, falling back to the highest version number.

    Args:
        versions: Versions of one track, in any order
        pinned_number: Version number the viewer asked for

    Returns:
        The chosen version, or None when there are none
    """
    if not versions:
        return None
    if pinned_number is not None:
        for version in versions:
            if version.version_number == pinned_number:
                return version
    for version in versions:
        if version.is_master:
            return version
    return max(versions, key=lambda v: v.version_number)
