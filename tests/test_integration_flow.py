import gzip
import io
import tarfile
from datetime import datetime, timezone

from tarblock import open_archive_for_read, open_archive_for_write
from tests.base import TarballTestCase, sample_content


class TestFlow(TarballTestCase):

    def test_end_to_end_file_archive(self):
        archive_path = self.tmp / "bundle.tar"
        mtime = datetime(2021, 9, 25, 18, 6, 34, tzinfo=timezone.utc)

        members = {
            "root_file.txt": b"contenido raiz",
            "sub/folder/nested.txt": b"contenido anidado",
            "empty.txt": b"",  # Caso de borde: archivo vacío
            "big.bin": sample_content(70_000),
        }

        with open_archive_for_write(archive_path) as writer:
            for name, content in members.items():
                writer.write_entry(name, content, mtime=mtime)

        self.assertEqual(archive_path.stat().st_size % 512, 0)

        found = {}
        with open_archive_for_read(archive_path) as reader:
            for entry in reader.entries():
                self.assertEqual(entry.last_write_time, mtime)
                with entry.open_content_reader() as content:
                    found[entry.name] = content.read()

        self.assertEqual(found, members)

        with tarfile.open(archive_path, mode="r:") as tf:
            f = tf.extractfile("sub/folder/nested.txt")
            assert f is not None, "El archivo no se pudo extraer"
            self.assertEqual(f.read(), b"contenido anidado")

    def test_gzip_layered_on_entry_streams(self):
        """gzip se aplica envolviendo la vista de cada entrada, en ambos sentidos."""
        original = sample_content(50_000, "gzip")
        stream = io.BytesIO()

        with open_archive_for_write(stream, leave_open=True) as writer:
            entry = writer.create_entry("payload.gz")
            with entry.open_content_writer(mtime=1) as raw:
                with gzip.GzipFile(fileobj=raw, mode="wb") as gz:
                    gz.write(original)

            writer.write_entry("after.txt", b"next entry", mtime=1)

        stream.seek(0)
        with open_archive_for_read(stream) as reader:
            entries = reader.entries()

            entry = next(entries)
            self.assertEqual(entry.name, "payload.gz")
            with entry.open_content_reader() as raw:
                with gzip.GzipFile(fileobj=raw, mode="rb") as gz:
                    self.assertEqual(gz.read(), original)

            entry = next(entries)
            with entry.open_content_reader() as raw:
                self.assertEqual(raw.read(), b"next entry")

    def test_sparse_last_entry_then_footer(self):
        """Una entrada declarada y no escrita queda en ceros, seguida del footer."""
        stream = io.BytesIO()

        with open_archive_for_write(stream, leave_open=True) as writer:
            entry = writer.create_entry("hole.bin")
            entry.open_content_writer(mtime=1, size=1024).close()

        self.assertEqual(len(stream.getvalue()), 512 + 1024 + 1024)
        self.assertEqual(self.read_archive(stream.getvalue()), [("hole.bin", b"\0" * 1024, 1)])
