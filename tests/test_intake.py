import pytest

from catalog_media.errors import IntakeRejected
from catalog_media.models import SourceFile
from catalog_media.services import gallery, intake

from conftest import make_source


def _ids():
    counter = iter(range(100))
    return lambda: f"new-{next(counter)}"


class TestCapacity:
    def test_overflowing_batch_rejected_whole(self, previews):
        snapshot = gallery.seed([f"https://cdn/{i}.webp" for i in range(8)])
        files = [make_source(name=f"{i}.png") for i in range(3)]

        with pytest.raises(IntakeRejected) as excinfo:
            intake.intake(snapshot, files, max_images=10, previews=previews, make_id=_ids())

        assert excinfo.value.remaining == 2
        assert str(excinfo.value) == "Maximum 10 images allowed. You can add 2 more."
        assert len(previews) == 0

    def test_batch_filling_gallery_exactly_is_admitted(self, previews):
        snapshot = gallery.seed([f"https://cdn/{i}.webp" for i in range(8)])
        files = [make_source(name="a.png"), make_source(name="b.png")]

        entries = intake.intake(snapshot, files, max_images=10, previews=previews, make_id=_ids())

        assert [e.source_file.name for e in entries] == ["a.png", "b.png"]
        assert all(e.status == "pending-local" for e in entries)
        assert all(e.locator.startswith("blob:") for e in entries)
        assert all(e.locator in previews for e in entries)

    def test_full_gallery_reports_zero_remaining(self):
        with pytest.raises(IntakeRejected) as excinfo:
            intake.check_capacity(10, 1, 10)
        assert excinfo.value.remaining == 0


class TestFilterDropped:
    def test_keeps_only_images(self):
        files = [
            make_source(name="a.png"),
            SourceFile(name="readme.md", content_type="text/markdown", data=b"#"),
            make_source(name="b.jpg", fmt="JPEG"),
        ]
        kept = intake.filter_dropped(files)
        assert [f.name for f in kept] == ["a.png", "b.jpg"]

    def test_no_images_rejected(self):
        files = [SourceFile(name="readme.md", content_type="text/markdown", data=b"#")]
        with pytest.raises(IntakeRejected, match="Please drop image files only"):
            intake.filter_dropped(files)
