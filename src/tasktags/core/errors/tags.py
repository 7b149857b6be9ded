"""Tag-level error classes."""

from typing import Any, Dict, List, Optional, Sequence

from tasktags.core.errors.common import TaskStoreError


class TagNotFoundError(TaskStoreError):
    """A tag partition is absent from the document.

    Attributes:
        tag: The missing tag.
        role: Optional role ("Source", "Target") used in the message.
    """

    code = "TAG_NOT_FOUND"

    def __init__(self, tag: str, role: Optional[str] = None):
        self.tag = tag
        self.role = role
        prefix = f"{role} tag" if role else "Tag"
        super().__init__(f'{prefix} "{tag}" not found')

    def to_details(self) -> Dict[str, Any]:
        return {"tag": self.tag, "role": self.role}


class SameTagError(TaskStoreError):
    """Cross-tag move whose source and target are the same tag."""

    code = "SAME_SOURCE_TARGET_TAG"

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f'Source and target tags are the same ("{tag}")')

    def to_details(self) -> Dict[str, Any]:
        return {"tag": self.tag}


class InvalidTagNameError(TaskStoreError):
    code = "INVALID_TAG_NAME"

    def __init__(self, tag: str, reason: str):
        self.tag = tag
        self.reason = reason
        super().__init__(f'Invalid tag name "{tag}": {reason}')

    def to_details(self) -> Dict[str, Any]:
        return {"tag": self.tag, "reason": self.reason}


class TagStructureError(TaskStoreError):
    """A partition exists but has the wrong shape."""

    code = "TAG_STRUCTURE_INVALID"

    def __init__(self, tag: str, issues: Sequence[str]):
        self.tag = tag
        self.issues: List[str] = list(issues)
        super().__init__(f'Tag "{tag}" is malformed: {"; ".join(self.issues)}')

    def to_details(self) -> Dict[str, Any]:
        return {"tag": self.tag, "issues": self.issues}
