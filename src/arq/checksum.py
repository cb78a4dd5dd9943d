"""
Checksum and corruption detection for ARQ packets.
"""


def compute_checksum(packet) -> int:
    """
    Compute the integrity checksum of a packet.

    The checksum is the plain integer sum of seqnum, acknum and every
    payload byte.

    Args:
        packet: Packet to checksum

    Returns:
        Checksum value
    """
    return packet.seqnum + packet.acknum + sum(packet.payload)


def is_corrupted(packet) -> bool:
    """Check whether the stored checksum disagrees with the packet contents."""
    return packet.checksum != compute_checksum(packet)
