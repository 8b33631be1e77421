"""
Sentence-based text chunker for knowledge embedding.
"""

import re
from typing import List

MIN_CHUNK_LENGTH = 50

_SENTENCE_BOUNDARY = re.compile(r'[.!?]+')


def split_text_into_chunks(text: str, max_chunk_size: int = 1000, overlap: int = 200) -> List[str]:
    """Split reference text into bounded, overlapping chunks.

    Sentences are accumulated into a running chunk. When the next sentence would
    push the chunk past ``max_chunk_size``, the chunk is closed and the next one
    is seeded with the last ``overlap // 10`` words of the closed chunk. Chunks of
    ``MIN_CHUNK_LENGTH`` characters or fewer are dropped.

    Args:
        text: Raw reference text
        max_chunk_size: Character budget for a chunk, before overlap is prepended
        overlap: Overlap budget; every 10 characters carry one word forward

    Returns:
        List of chunk strings

    Raises:
        ValueError: If max_chunk_size is not positive or overlap is negative
    """
    if max_chunk_size <= 0:
        raise ValueError(f'max_chunk_size must be positive, got {max_chunk_size}')
    if overlap < 0:
        raise ValueError(f'overlap must not be negative, got {overlap}')

    sentences = [s.strip() for s in _SENTENCE_BOUNDARY.split(text or '') if s.strip()]
    overlap_words = overlap // 10

    chunks = []
    current = ''
    for sentence in sentences:
        piece = sentence + '.'
        # +1 for the joining space
        if current and len(current) + len(piece) + 1 > max_chunk_size:
            chunks.append(current)

            carried = current.split(' ')[-overlap_words:] if overlap_words else []
            current = ' '.join(carried + [piece])
        else:
            current = f'{current} {piece}' if current else piece

    if current:
        chunks.append(current)

    return [chunk for chunk in chunks if len(chunk) > MIN_CHUNK_LENGTH]
