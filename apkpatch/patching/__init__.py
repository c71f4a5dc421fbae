"""Native library patching.

Features:
- Byte pattern decoding and first-occurrence search
- Architecture-scoped find/replace descriptor sets
- In-place payload patching with per-descriptor reports
- Walking every architecture of an extracted archive
"""

from .patterns import (
    BytePattern,
    find_pattern,
    parse_hex_pattern,
)
from .descriptors import (
    DescriptorIssue,
    DescriptorLoadResult,
    DescriptorSet,
    LoadStatus,
    PatchDescriptor,
    load_descriptors,
)
from .patcher import (
    PatchApplicationResult,
    PayloadPatcher,
)
from .walker import (
    ArchitectureReport,
    ArchitectureStatus,
    ArchitectureWalker,
    WalkSummary,
)

__all__ = [
    "BytePattern",
    "find_pattern",
    "parse_hex_pattern",
    "DescriptorIssue",
    "DescriptorLoadResult",
    "DescriptorSet",
    "LoadStatus",
    "PatchDescriptor",
    "load_descriptors",
    "PatchApplicationResult",
    "PayloadPatcher",
    "ArchitectureReport",
    "ArchitectureStatus",
    "ArchitectureWalker",
    "WalkSummary",
]
