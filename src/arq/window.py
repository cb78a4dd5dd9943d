"""
Sequence Window Arithmetic

Modular helpers shared by the sender and receiver windows. Windows are
identified by the sequence number at their base and the buffer slot that
base occupies; everything else is an offset from there.
"""


def validate_window(window_size: int, seqspace: int):
    """
    Check that a window fits its sequence space.

    Args:
        window_size: Number of slots in the window
        seqspace: Size of the sequence number space

    Raises:
        ValueError: If the window is empty or seqspace < 2 * window_size
    """
    if window_size < 1:
        raise ValueError("Window size must be at least 1")
    if seqspace < 2 * window_size:
        raise ValueError(
            f"Sequence space {seqspace} too small for window {window_size} "
            f"(need at least {2 * window_size})"
        )


def next_seqnum(seqnum: int, seqspace: int) -> int:
    """Sequence number following seqnum."""
    return (seqnum + 1) % seqspace


def seq_offset(seqnum: int, base: int, seqspace: int) -> int:
    """Distance from base forward to seqnum, modulo the sequence space."""
    return (seqnum - base) % seqspace


def in_window(seqnum: int, base: int, size: int, seqspace: int) -> bool:
    """
    Check if seqnum lies in [base, base + size) modulo seqspace.

    Args:
        seqnum: Sequence number to test
        base: First sequence number of the window
        size: Window size
        seqspace: Size of the sequence number space

    Returns:
        True if seqnum is inside the window
    """
    if not 0 <= seqnum < seqspace:
        return False
    return seq_offset(seqnum, base, seqspace) < size


def slot_for(base_slot: int, offset: int, window_size: int) -> int:
    """
    Map a window offset to its buffer slot.

    Args:
        base_slot: Slot holding the window base
        offset: Offset from the window base
        window_size: Number of slots

    Returns:
        Slot index

    Raises:
        IndexError: If offset falls outside the window
    """
    if not 0 <= offset < window_size:
        raise IndexError(f"Offset {offset} outside window of {window_size}")
    return (base_slot + offset) % window_size
