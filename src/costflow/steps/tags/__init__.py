from .rules import TagCondition, TagConflictPolicy, TagRule, default_tag_rules, load_tag_rules, merge_tags
from .virtual_tags import VirtualTag, VirtualTagsStep

__all__ = [
    "TagCondition",
    "TagConflictPolicy",
    "TagRule",
    "VirtualTag",
    "VirtualTagsStep",
    "default_tag_rules",
    "load_tag_rules",
    "merge_tags",
]
