"""
Version numbering and content normalization for the template store.
"""

import copy
from typing import Any, Dict, Optional

import semver

INITIAL_VERSION = "1.0.0"


def parse_version(version: str) -> semver.Version:
    return semver.Version.parse(version)


def next_version(current: str) -> str:
    """Bump the minor component; major and patch are kept (1.2.3 -> 1.3.3)."""
    parsed = parse_version(current)
    return str(parsed.replace(minor=parsed.minor + 1, prerelease=None, build=None))


def normalize_content(content: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Copy of a content payload where the schema lists always exist:
    `sections` is a list and every dict section has a `questions` list.
    Other keys are returned untouched.
    """
    normalized = copy.deepcopy(content) if isinstance(content, dict) else {}
    sections = normalized.get("sections")
    if not isinstance(sections, list):
        sections = []
    fixed = []
    for section in sections:
        if isinstance(section, dict):
            section = dict(section)
            if not isinstance(section.get("questions"), list):
                section["questions"] = []
        fixed.append(section)
    normalized["sections"] = fixed
    return normalized
