"""Platform classification of test doc comments."""

import re

from .models import PlatformCode

MAC_KEYWORDS = ("osx", "darwin", "macos", "macosx")
LINUX_KEYWORDS = ("linux", "unix", "amazon", "centos", "ubuntu", "debian", "fedora", "opensuse", "rhel")

_MAC_PATTERN = re.compile("|".join(MAC_KEYWORDS), re.IGNORECASE)
_LINUX_PATTERN = re.compile("|".join(LINUX_KEYWORDS), re.IGNORECASE)


def classify_platform(doc: str) -> PlatformCode:
    """Pick the platform a test targets from keywords in its doc comment.

    Matching is a case-insensitive substring search. Mac keywords win over
    Linux keywords; with neither present the default platform is returned.
    """
    if not doc:
        return PlatformCode.DEFAULT
    if _MAC_PATTERN.search(doc):
        return PlatformCode.MAC
    if _LINUX_PATTERN.search(doc):
        return PlatformCode.LINUX
    return PlatformCode.DEFAULT
