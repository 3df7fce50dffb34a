"""
@mention extraction
"""

import re
from typing import List

MENTION_PATTERN = re.compile(r"@(\w+)")


def extract_mentions(content: str) -> List[str]:
    """
    Extract @handles from text

    Handles are returned once each, in order of first appearance.

    Args:
        content: Comment text

    Returns:
        List of handles without the "@" sign
    """
    if not content:
        return []

    seen = set()
    handles: List[str] = []
    for match in MENTION_PATTERN.finditer(content):
        handle = match.group(1)
        if handle not in seen:
            seen.add(handle)
            handles.append(handle)
    return handles
