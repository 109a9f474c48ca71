"""Crop consolidation pass, run once between parsing and filter building."""

import logging

from naturalff import nodes
from naturalff.models import CropAccumulator, MediaDescriptor

logger = logging.getLogger(__name__)


class CompileError(ValueError):
    """Raised when a script cannot be compiled at all."""


class CropBoundsError(CompileError):
    """Raised when the requested crops consume a whole known dimension."""


def accumulate(crops: list[nodes.Crop]) -> CropAccumulator:
    """Sum crop amounts per edge, in directive order."""
    acc = CropAccumulator()
    for crop in crops:
        size = crop.size
        if crop.side in ("left", "width", "each"):
            acc.left += size
        if crop.side in ("right", "width", "each"):
            acc.right += size
        if crop.side in ("top", "height", "each"):
            acc.top += size
        if crop.side in ("bottom", "height", "each"):
            acc.bottom += size
    return acc


def check_bounds(acc: CropAccumulator, descriptor: MediaDescriptor | None) -> None:
    if descriptor is None or not descriptor.has_resolution:
        return
    if acc.horizontal >= descriptor.width:
        raise CropBoundsError(
            f"Crop too wide: left {acc.left}px + right {acc.right}px = "
            f"{acc.horizontal}px, video width is {descriptor.width}px"
        )
    if acc.vertical >= descriptor.height:
        raise CropBoundsError(
            f"Crop too tall: top {acc.top}px + bottom {acc.bottom}px = "
            f"{acc.vertical}px, video height is {descriptor.height}px"
        )


def optimize_crops(
    commands: list[nodes.CommandNode],
    descriptor: MediaDescriptor | None = None,
) -> list[nodes.CommandNode]:
    """Merge two or more Crop nodes into a single OptimizedCrop.

    The merged node is placed first and the remaining nodes keep their order.
    With zero or one Crop the list is returned unchanged. A ``0px`` crop,
    the border-detection sentinel, is remembered on the merged node.

    Raises:
        CropBoundsError: the totals meet or exceed a known source dimension.
    """
    crops = [c for c in commands if isinstance(c, nodes.Crop)]
    if len(crops) < 2:
        return list(commands)

    acc = accumulate(crops)
    check_bounds(acc, descriptor)

    merged = nodes.OptimizedCrop(
        left=acc.left,
        right=acc.right,
        top=acc.top,
        bottom=acc.bottom,
        detect_borders=any(c.size == 0 for c in crops),
    )
    logger.debug("Merged %d crops into %s", len(crops), merged)
    rest = [c for c in commands if not isinstance(c, nodes.Crop)]
    return [merged, *rest]
