"""Tests for the chunk planner."""

import io

import pytest

from b2client._chunking import (
    UNKNOWN_LENGTH,
    effective_part_size,
    plan_parts,
    should_chunk,
    stream_length,
)
from b2client.options import MEGABYTE


class TestShouldChunk:
    def test_below_cutoff(self) -> None:
        assert not should_chunk(99, 100)

    def test_at_cutoff(self) -> None:
        assert should_chunk(100, 100)


class TestEffectivePartSize:
    def test_zero_uses_recommended(self) -> None:
        assert effective_part_size(0, 100 * MEGABYTE, 5 * MEGABYTE) == 100 * MEGABYTE

    def test_below_absolute_minimum_is_raised(self) -> None:
        assert effective_part_size(MEGABYTE, 100 * MEGABYTE, 5 * MEGABYTE) == 5 * MEGABYTE

    def test_configured_size_wins(self) -> None:
        assert effective_part_size(20 * MEGABYTE, 100 * MEGABYTE, 5 * MEGABYTE) == 20 * MEGABYTE


class TestPlanParts:
    def test_250mb_with_100mb_parts(self) -> None:
        parts = plan_parts(250 * MEGABYTE, 100 * MEGABYTE)

        assert [p.part_number for p in parts] == [1, 2, 3]
        assert [p.position for p in parts] == [0, 100 * MEGABYTE, 200 * MEGABYTE]
        assert [p.length for p in parts] == [100 * MEGABYTE, 100 * MEGABYTE, 50 * MEGABYTE]

    def test_exact_multiple(self) -> None:
        parts = plan_parts(300, 100)
        assert [p.length for p in parts] == [100, 100, 100]

    def test_content_that_fits_one_part_is_not_split(self) -> None:
        assert plan_parts(100, 100) == []
        assert plan_parts(1, 100) == []

    def test_unknown_length(self) -> None:
        assert plan_parts(UNKNOWN_LENGTH, 100) == []

    @pytest.mark.parametrize("part_size", [0, -1])
    def test_part_size_must_be_positive(self, part_size: int) -> None:
        with pytest.raises(ValueError):
            plan_parts(1000, part_size)

    @pytest.mark.parametrize(
        "total,part_size",
        [(101, 100), (1000, 7), (5 * MEGABYTE + 1, MEGABYTE), (12345, 4096)],
    )
    def test_parts_cover_range_without_gaps(self, total: int, part_size: int) -> None:
        parts = plan_parts(total, part_size)

        assert sum(p.length for p in parts) == total
        assert parts[0].position == 0
        for previous, current in zip(parts, parts[1:]):
            assert current.position == previous.end
            assert current.part_number == previous.part_number + 1
        assert all(0 < p.length <= part_size for p in parts)
        assert parts[-1].end == total

    def test_range_header(self) -> None:
        parts = plan_parts(250, 100)
        assert [p.range_header for p in parts] == [
            "bytes=0-99",
            "bytes=100-199",
            "bytes=200-249",
        ]


class _Unseekable(io.RawIOBase):
    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False


class TestStreamLength:
    def test_counts_from_current_position(self) -> None:
        stream = io.BytesIO(b"0123456789")
        stream.seek(4)

        assert stream_length(stream) == 6
        assert stream.tell() == 4

    def test_unseekable_stream(self) -> None:
        assert stream_length(_Unseekable()) == UNKNOWN_LENGTH  # type: ignore[arg-type]
