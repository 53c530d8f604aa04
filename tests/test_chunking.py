"""Tests for paragraph chunking and merging."""
import random

from lektorat.services.chunking import ChunkingService, TextChunk, flatten_change_lists


def _paragraphs(count: int, size: int) -> list:
    return [f"P{i} " + "x" * (size - len(f"P{i} ")) for i in range(count)]


def test_short_text_is_single_chunk():
    service = ChunkingService(max_chunk_size=100)
    chunks = service.split("Erster Absatz.\n\nZweiter Absatz.")
    assert chunks == [TextChunk(text="Erster Absatz.\n\nZweiter Absatz.", index=0)]


def test_needs_chunking_boundary():
    service = ChunkingService(max_chunk_size=10)
    assert service.needs_chunking("a" * 10) is False
    assert service.needs_chunking("a" * 11) is True


def test_round_trip_preserves_paragraphs():
    paragraphs = _paragraphs(40, 90)
    text = "\n\n".join(paragraphs)
    service = ChunkingService(max_chunk_size=500)

    chunks = service.split(text)

    assert len(chunks) > 1
    assert ChunkingService.merge(chunks) == text
    assert ChunkingService.merge(chunks).split("\n\n") == paragraphs


def test_round_trip_normalises_extra_blank_lines():
    service = ChunkingService(max_chunk_size=30)
    text = "one paragraph\n\n\n\ntwo paragraph\n\nthree paragraph"
    merged = ChunkingService.merge(service.split(text))
    assert merged.split("\n\n") == ["one paragraph", "two paragraph", "three paragraph"]


def test_chunk_size_bound():
    text = "\n\n".join(_paragraphs(50, 120))
    service = ChunkingService(max_chunk_size=1000)
    for chunk in service.split(text):
        assert len(chunk.text) <= 1000


def test_greedy_packing_uses_separator_length():
    # 4 + 2 + 4 = 10 fits exactly, the third paragraph does not
    service = ChunkingService(max_chunk_size=10)
    chunks = service.split("aaaa\n\nbbbb\n\ncccc")
    assert [c.text for c in chunks] == ["aaaa\n\nbbbb", "cccc"]


def test_oversized_paragraph_becomes_own_chunk():
    service = ChunkingService(max_chunk_size=50)
    huge = "y" * 200
    chunks = service.split(f"short one\n\n{huge}\n\nshort two")

    assert [c.text for c in chunks] == ["short one", huge, "short two"]
    oversized = [c for c in chunks if len(c.text) > 50]
    assert len(oversized) == 1


def test_index_monotonicity():
    chunks = ChunkingService(max_chunk_size=200).split("\n\n".join(_paragraphs(30, 60)))
    assert [c.index for c in chunks] == list(range(len(chunks)))


def test_merge_is_order_independent():
    chunks = ChunkingService(max_chunk_size=200).split("\n\n".join(_paragraphs(30, 60)))
    shuffled = list(chunks)
    random.Random(7).shuffle(shuffled)
    assert ChunkingService.merge(shuffled) == ChunkingService.merge(chunks)


def test_empty_text_yields_no_chunks():
    service = ChunkingService(max_chunk_size=100)
    assert service.split("") == []
    assert service.split("   \n\n  ") == []


def test_flatten_change_lists_keeps_chunk_order_and_duplicates():
    lists = [["Style", "a"], [], ["Style", "b"]]
    assert flatten_change_lists(lists) == ["Style", "a", "Style", "b"]
