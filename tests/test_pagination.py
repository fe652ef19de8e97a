"""
Tests for cursor pagination and the batch loader.
"""

import pytest

from ledger_api.exceptions import ValidationError
from ledger_api.loaders import BatchLoader
from ledger_api.pagination import connection_from_list, cursor_to_offset, offset_to_cursor


ITEMS = list("abcdef")


def _nodes(connection):
    return [edge.node for edge in connection.edges]


class TestConnectionFromList:

    def test_no_arguments_returns_everything(self):
        connection = connection_from_list(ITEMS)
        assert _nodes(connection) == ITEMS
        assert connection.total_count == 6
        assert connection.page_info.has_next_page is False
        assert connection.page_info.has_previous_page is False

    def test_first(self):
        connection = connection_from_list(ITEMS, first=2)
        assert _nodes(connection) == ["a", "b"]
        assert connection.page_info.has_next_page is True
        assert connection.page_info.start_cursor == offset_to_cursor(0)
        assert connection.page_info.end_cursor == offset_to_cursor(1)

    def test_first_after(self):
        connection = connection_from_list(ITEMS, first=2, after=offset_to_cursor(1))
        assert _nodes(connection) == ["c", "d"]
        assert connection.page_info.has_next_page is True

    def test_first_reaching_the_end(self):
        connection = connection_from_list(ITEMS, first=10, after=offset_to_cursor(3))
        assert _nodes(connection) == ["e", "f"]
        assert connection.page_info.has_next_page is False

    def test_last(self):
        connection = connection_from_list(ITEMS, last=2)
        assert _nodes(connection) == ["e", "f"]
        assert connection.page_info.has_previous_page is True

    def test_last_before(self):
        connection = connection_from_list(ITEMS, last=2, before=offset_to_cursor(4))
        assert _nodes(connection) == ["c", "d"]
        assert connection.page_info.has_previous_page is True

    def test_after_and_before(self):
        connection = connection_from_list(ITEMS, after=offset_to_cursor(0), before=offset_to_cursor(3))
        assert _nodes(connection) == ["b", "c"]

    def test_empty_list(self):
        connection = connection_from_list([], first=5)
        assert connection.edges == []
        assert connection.page_info.start_cursor is None
        assert connection.page_info.end_cursor is None
        assert connection.page_info.has_next_page is False

    def test_first_zero(self):
        connection = connection_from_list(ITEMS, first=0)
        assert connection.edges == []
        assert connection.page_info.has_next_page is True

    @pytest.mark.parametrize("kwargs", [{"first": -1}, {"last": -1}])
    def test_negative_counts_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            connection_from_list(ITEMS, **kwargs)


class TestCursors:

    def test_cursor_is_opaque_offset(self):
        assert cursor_to_offset(offset_to_cursor(42)) == 42

    @pytest.mark.parametrize("cursor", ["", "%%%", "YWJj", "YXJyYXljb25uZWN0aW9uOng="])
    def test_malformed_cursor(self, cursor):
        with pytest.raises(ValidationError):
            cursor_to_offset(cursor)


class TestBatchLoader:

    async def test_one_batch_for_many_keys(self):
        calls = []

        async def batch(keys):
            calls.append(keys)
            return {key: key * 10 for key in keys}

        loader = BatchLoader(batch)
        assert await loader.load_many([1, 2, 3, 2]) == [10, 20, 30, 20]
        assert calls == [[1, 2, 3]]
        assert loader.batches_issued == 1

    async def test_cached_keys_not_refetched(self):
        calls = []

        async def batch(keys):
            calls.append(keys)
            return {key: str(key) for key in keys}

        loader = BatchLoader(batch)
        await loader.load(1)
        assert await loader.load_many([1, 2]) == ["1", "2"]
        assert calls == [[1], [2]]

        await loader.load_many([1, 2])
        assert loader.batches_issued == 2

    async def test_clear_forces_reload(self):
        values = {"k": "old"}

        async def batch(keys):
            return {key: values[key] for key in keys}

        loader = BatchLoader(batch)
        assert await loader.load("k") == "old"
        values["k"] = "new"
        assert await loader.load("k") == "old"
        loader.clear("k")
        assert await loader.load("k") == "new"

    async def test_prime(self):
        async def batch(keys):
            raise AssertionError("should not be called")

        loader = BatchLoader(batch)
        loader.prime("k", "v")
        assert await loader.load("k") == "v"
