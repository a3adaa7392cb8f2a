from pathlib import Path

from dentassist.booking.storage import JsonFileStorage, MemoryStorage, user_storage_dir


class TestJsonFileStorage:
    def test_missing_bucket_reads_none(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path)

        assert storage.get_item("nothing") is None

    def test_round_trip_creates_directory(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path / "nested" / "user-1")

        storage.set_item("bucket", '{"a": 1}')

        assert storage.get_item("bucket") == '{"a": 1}'
        assert (tmp_path / "nested" / "user-1" / "bucket.json").exists()

    def test_remove_is_idempotent(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path)
        storage.set_item("bucket", "{}")

        storage.remove_item("bucket")
        storage.remove_item("bucket")

        assert storage.get_item("bucket") is None


class TestMemoryStorage:
    def test_overwrites_and_removes(self) -> None:
        storage = MemoryStorage()

        storage.set_item("bucket", "1")
        storage.set_item("bucket", "2")
        assert storage.get_item("bucket") == "2"

        storage.remove_item("bucket")
        assert storage.get_item("bucket") is None


class TestUserStorageDir:
    def test_plain_id_is_used_as_is(self, tmp_path: Path) -> None:
        assert user_storage_dir(tmp_path, "user_2abcXYZ") == tmp_path / "user_2abcXYZ"

    def test_traversal_stays_inside_base(self, tmp_path: Path) -> None:
        directory = user_storage_dir(tmp_path, "../..")
        storage = JsonFileStorage(directory)

        storage.set_item("bucket", "{}")

        assert directory.parent == tmp_path
        assert ".." not in directory.name
        assert (directory / "bucket.json").exists()

    def test_rewritten_ids_do_not_collide(self, tmp_path: Path) -> None:
        assert user_storage_dir(tmp_path, "a.b") != user_storage_dir(tmp_path, "a_b")
        assert user_storage_dir(tmp_path, "a/b") != user_storage_dir(tmp_path, "a.b")
