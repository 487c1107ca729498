"""
Pagination view tests
"""

import pytest

from core.pagination import PaginationView


def test_last_page_holds_the_remainder():
    view = PaginationView(page_size=10, items=range(25))
    assert view.page_count == 3

    assert view.go_to(3)
    assert view.window == list(range(20, 25))
    assert view.window_range == (21, 25)
    assert not view.has_next
    assert view.has_previous


def test_out_of_range_page_is_rejected():
    view = PaginationView(page_size=10, items=range(25))
    assert not view.go_to(4)
    assert not view.go_to(0)
    assert view.page == 1


def test_next_and_previous_stop_at_the_ends():
    view = PaginationView(page_size=10, items=range(15))
    assert not view.previous_page()
    assert view.next_page()
    assert not view.next_page()
    assert view.page == 2


def test_update_keeps_page_while_it_exists():
    view = PaginationView(page_size=10, items=range(25))
    view.go_to(2)
    view.update(range(30))
    assert view.page == 2


def test_update_clamps_when_page_disappears():
    view = PaginationView(page_size=10, items=range(25))
    view.go_to(3)
    view.update(range(12))
    assert view.page == 2
    assert view.window == [10, 11]

    view.update(())
    assert view.page == 1
    assert view.window == []
    assert view.window_range == (0, 0)
    assert view.page_count == 0


def test_page_size_must_be_positive():
    with pytest.raises(ValueError):
        PaginationView(page_size=-1)
