import threading
import time

import pytest

from gasticker.services.locks import ReadWriteLock


def test_readers_share_the_lock() -> None:
    lock = ReadWriteLock()
    both_inside = threading.Barrier(2, timeout=5)

    def reader() -> None:
        with lock.read():
            both_inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert not both_inside.broken


def test_writer_excludes_readers() -> None:
    lock = ReadWriteLock()
    order: list[str] = []
    lock.acquire_write()

    def reader() -> None:
        with lock.read():
            order.append("read")

    thread = threading.Thread(target=reader)
    thread.start()
    time.sleep(0.05)
    order.append("write-done")
    lock.release_write()
    thread.join(timeout=5)

    assert order == ["write-done", "read"]


def test_waiting_writer_blocks_new_readers() -> None:
    lock = ReadWriteLock()
    order: list[str] = []
    lock.acquire_read()

    def writer() -> None:
        with lock.write():
            order.append("write")

    def late_reader() -> None:
        with lock.read():
            order.append("read")

    writer_thread = threading.Thread(target=writer)
    writer_thread.start()
    time.sleep(0.05)
    reader_thread = threading.Thread(target=late_reader)
    reader_thread.start()
    time.sleep(0.05)
    assert order == []

    lock.release_read()
    writer_thread.join(timeout=5)
    reader_thread.join(timeout=5)

    assert order == ["write", "read"]


def test_unbalanced_release_raises() -> None:
    lock = ReadWriteLock()

    with pytest.raises(RuntimeError):
        lock.release_read()
    with pytest.raises(RuntimeError):
        lock.release_write()
