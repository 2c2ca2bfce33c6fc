# tests/test_task_service.py

from __future__ import annotations

import threading

import pytest

from taskfeed.core.errors import NotFoundError, StorageError, ValidationError
from taskfeed.tasks.task_service import TaskService

from .fakes import FlakyTaskRepo


def test_added_tasks_keep_order_and_unique_ids(service: TaskService) -> None:
    titles = [f"task {i}" for i in range(10)]
    created = [service.add_new_task(t) for t in titles]

    listed = service.list_tasks()
    assert [t.title for t in listed] == titles
    assert [t.id for t in listed] == [t.id for t in created]
    assert len({t.id for t in listed}) == 10


@pytest.mark.parametrize("bad", ["", "   ", "\n\t "])
def test_blank_title_is_rejected_without_effect(service: TaskService, bad: str) -> None:
    sub = service.all_tasks()
    sub.poll()

    with pytest.raises(ValidationError):
        service.add_new_task(bad)

    assert sub.poll() is None
    assert service.store.count_tasks() == 0


def test_delete_is_idempotent(service: TaskService) -> None:
    keep = service.add_new_task("keep")
    gone = service.add_new_task("gone")

    assert service.delete_task(gone.id) is True
    assert [t.id for t in service.list_tasks()] == [keep.id]

    sub = service.all_tasks()
    sub.poll()
    assert service.delete_task(gone.id) is False
    assert sub.poll() is None


def test_status_set_and_toggle(service: TaskService) -> None:
    task = service.add_new_task("Buy milk")

    assert service.update_task_status(task.id, True).is_completed is True
    assert service.store.get(task.id).is_completed is True

    assert service.toggle_task(task.id).is_completed is False
    assert service.toggle_task(task.id).is_completed is True
    assert service.toggle_task(task.id).is_completed is False

    with pytest.raises(NotFoundError):
        service.toggle_task(task.id + 999)


def test_setting_same_status_does_not_emit(service: TaskService) -> None:
    task = service.add_new_task("x")
    service.update_task_status(task.id, True)
    sub = service.all_tasks()
    sub.poll()

    service.update_task_status(task.id, True)
    assert sub.poll() is None


def test_update_title_validation_and_missing(service: TaskService) -> None:
    task = service.add_new_task("Walk dog")
    sub = service.all_tasks()
    sub.poll()

    with pytest.raises(ValidationError):
        service.update_task_title(task.id, "  ")
    with pytest.raises(NotFoundError):
        service.update_task_title(task.id + 999, "x")
    with pytest.raises(NotFoundError):
        service.update_task_status(task.id + 999, True)

    assert sub.poll() is None
    assert service.store.get(task.id).title == "Walk dog"

    assert service.update_task_title(task.id, "  Walk the dog ").title == "Walk the dog"


def test_subscriber_sees_one_result_per_state(service: TaskService) -> None:
    sub = service.all_tasks()

    initial = sub.poll()
    assert initial is not None
    assert len(initial) == 0

    seen = []

    def step() -> None:
        rs = sub.poll()
        assert rs is not None
        assert sub.poll() is None
        seen.append(rs)

    t1 = service.add_new_task("Buy milk")
    step()
    t2 = service.add_new_task("Walk dog")
    step()
    service.update_task_status(t1.id, True)
    step()
    service.update_task_title(t2.id, "Walk the dog")
    step()
    service.delete_task(t1.id)
    step()

    assert [[(t.title, t.is_completed) for t in rs] for rs in seen] == [
        [("Buy milk", False)],
        [("Buy milk", False), ("Walk dog", False)],
        [("Buy milk", True), ("Walk dog", False)],
        [("Buy milk", True), ("Walk the dog", False)],
        [("Walk the dog", False)],
    ]
    revisions = [initial.revision] + [rs.revision for rs in seen]
    assert revisions == sorted(set(revisions))

    final = seen[-1]
    assert len(final) == 1
    assert final[0].id == t2.id
    assert final[0].title == "Walk the dog"
    assert final[0].is_completed is False


def test_all_tasks_is_one_shared_feed(service: TaskService) -> None:
    a = service.all_tasks()
    b = service.all_tasks()
    service.add_new_task("shared")

    ra, rb = a.poll(), b.poll()
    assert ra == rb
    assert ra.revision == rb.revision
    assert service.feed.subscriber_count() == 2


def test_concurrent_adds_do_not_lose_updates(service: TaskService) -> None:
    before = service.store.count_tasks()
    barrier = threading.Barrier(8)
    results = []
    errors = []

    def add(i: int) -> None:
        try:
            barrier.wait(timeout=5.0)
            results.append(service.add_new_task(f"parallel {i}"))
        except Exception as e:  # pragma: no cover - surfaced by the assert below
            errors.append(e)

    threads = [threading.Thread(target=add, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10.0)

    assert errors == []
    assert service.store.count_tasks() == before + 8
    assert len({t.id for t in results}) == 8
    orders = [t.created_order for t in service.list_tasks()]
    assert orders == sorted(orders)
    assert len(set(orders)) == 8


def test_concurrent_subscriber_eventually_sees_latest(service: TaskService) -> None:
    sub = service.all_tasks()

    def writer() -> None:
        for i in range(20):
            service.add_new_task(f"w{i}")

    threads = [threading.Thread(target=writer) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10.0)

    last = None
    while True:
        rs = sub.get(timeout=0.05)
        if rs is None:
            break
        last = rs
    assert last is not None
    assert len(last) == 40
    assert last == type(last).of(service.list_tasks())


def test_storage_error_propagates_and_feed_stays_put() -> None:
    repo = FlakyTaskRepo()
    service = TaskService(repo)
    task = service.add_new_task("safe")
    sub = service.all_tasks()
    sub.poll()

    repo.fail_writes = True
    with pytest.raises(StorageError):
        service.add_new_task("lost")
    with pytest.raises(StorageError):
        service.update_task_title(task.id, "lost")
    with pytest.raises(StorageError):
        service.delete_task(task.id)

    assert sub.poll() is None
    assert [t.title for t in service.list_tasks()] == ["safe"]
    service.close()
    assert sub.closed
