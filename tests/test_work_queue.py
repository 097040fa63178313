"""Tests for the double-ended work queue."""

import pytest

from pipelines.work_queue import WorkQueue


def test_fifo_draining():
    queue = WorkQueue(["a", "b"])
    queue.push_back("c")
    assert [queue.pop_front() for _ in range(3)] == ["a", "b", "c"]
    assert not queue


def test_split_children_go_ahead_of_siblings_in_order():
    queue = WorkQueue(["later"])
    queue.push_front("first-half", "second-half")
    assert list(queue) == ["first-half", "second-half", "later"]
    assert len(queue) == 3


def test_nested_splits_stay_in_document_order():
    queue = WorkQueue(["1-10", "11-20"])
    queue.pop_front()
    queue.push_front("1-5", "6-10")
    queue.pop_front()
    queue.push_front("1-3", "4-5")
    assert list(queue) == ["1-3", "4-5", "6-10", "11-20"]


def test_pop_from_empty_queue():
    with pytest.raises(IndexError):
        WorkQueue().pop_front()
