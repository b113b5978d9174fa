"""
Imaging Tests
=============

Tests for center cropping, still capture and strip composition.
"""

import numpy as np
import pytest

from photobooth.imaging.codec import decode_image, encode_image


def _solid_photo(bgr):
    """CapturedPhoto holding a solid-color 500x350 JPEG."""
    from photobooth.models.session import CapturedPhoto

    image = np.zeros((350, 500, 3), dtype=np.uint8)
    image[:] = bgr
    return CapturedPhoto(
        image=encode_image(image, ".jpg", quality=90),
        width=500,
        height=350,
        captured_at=0.0,
    )


class TestCrop:
    """Tests for compute_crop."""

    def test_wide_source_trims_sides(self):
        """A 16:9 frame loses its left and right edges."""
        from photobooth.imaging.crop import compute_crop

        crop = compute_crop(1280, 720, 500, 350)
        assert crop.sy == 0
        assert crop.sh == 720
        assert crop.sw == pytest.approx(720 * 500 / 350)
        assert crop.sx == pytest.approx((1280 - crop.sw) / 2)

    def test_tall_source_trims_top_and_bottom(self):
        from photobooth.imaging.crop import compute_crop

        crop = compute_crop(720, 1280, 500, 350)
        assert crop.sx == 0
        assert crop.sw == 720
        assert crop.sh == pytest.approx(720 * 350 / 500)
        assert crop.sy == pytest.approx((1280 - crop.sh) / 2)

    def test_matching_aspect_keeps_full_frame(self):
        from photobooth.imaging.crop import compute_crop

        crop = compute_crop(1000, 700, 500, 350)
        assert (crop.sx, crop.sy, crop.sw, crop.sh) == (0, 0, 1000, 700)

    def test_aspect_ratio_is_preserved(self):
        from photobooth.imaging.crop import compute_crop

        for source in [(640, 480), (1920, 1080), (480, 640), (333, 777)]:
            crop = compute_crop(*source, 500, 350)
            assert crop.sw / crop.sh == pytest.approx(500 / 350)
            assert crop.sx + crop.sw <= source[0] + 1e-9
            assert crop.sy + crop.sh <= source[1] + 1e-9

    def test_non_positive_extent_rejected(self):
        from photobooth.imaging.crop import compute_crop

        with pytest.raises(ValueError):
            compute_crop(0, 720, 500, 350)


class TestFrameCapturer:
    """Tests for FrameCapturer."""

    def test_capture_produces_canonical_jpeg(self, static_source):
        from photobooth.imaging.capture import FrameCapturer

        photo = FrameCapturer(clock=lambda: 42.0).capture(static_source, 500, 350)

        assert photo.image[:2] == b"\xff\xd8"
        assert (photo.width, photo.height) == (500, 350)
        assert photo.captured_at == 42.0
        assert decode_image(photo.image).shape == (350, 500, 3)

    def test_capture_is_mirrored(self, static_source):
        """The white right half of the frame ends up on the left."""
        from photobooth.imaging.capture import FrameCapturer

        photo = FrameCapturer().capture(static_source)
        image = decode_image(photo.image)

        assert image[175, 20].mean() > 200
        assert image[175, 480].mean() < 50

    def test_capture_without_mirror(self, static_source):
        from photobooth.imaging.capture import FrameCapturer

        photo = FrameCapturer(mirror=False).capture(static_source)
        image = decode_image(photo.image)

        assert image[175, 20].mean() < 50
        assert image[175, 480].mean() > 200

    def test_not_ready_source_raises(self):
        from photobooth.camera.source import StaticFrameSource
        from photobooth.errors import CaptureNotReady
        from photobooth.imaging.capture import FrameCapturer

        with pytest.raises(CaptureNotReady):
            FrameCapturer().capture(StaticFrameSource())

    def test_grayscale_frame_is_accepted(self):
        from photobooth.camera.source import StaticFrameSource
        from photobooth.imaging.capture import FrameCapturer

        source = StaticFrameSource(np.full((480, 640), 128, dtype=np.uint8))
        photo = FrameCapturer().capture(source)
        assert decode_image(photo.image).shape == (350, 500, 3)


class TestCompositor:
    """Tests for Compositor."""

    def _photos(self):
        return [
            _solid_photo((0, 0, 255)),
            _solid_photo((0, 255, 0)),
            _solid_photo((255, 0, 0)),
        ]

    def test_strip_dimensions(self, catalog):
        from photobooth.imaging.compositor import Compositor

        strip = Compositor().compose(self._photos(), catalog.selected)

        assert strip[:8] == b"\x89PNG\r\n\x1a\n"
        assert decode_image(strip).shape == (1400, 600, 3)

    def test_composition_is_deterministic(self, catalog):
        from photobooth.imaging.compositor import Compositor

        compositor = Compositor()
        photos = self._photos()
        assert compositor.compose(photos, catalog.selected) == compositor.compose(
            photos, catalog.selected
        )

    def test_photos_show_through_windows(self, catalog):
        """Slot i shows photo i; the frame covers the margins."""
        from photobooth.imaging.compositor import Compositor
        from photobooth.models.geometry import DEFAULT_LAYOUT

        image = decode_image(Compositor().compose(self._photos(), catalog.get("classic-white")))

        expected = [(0, 0, 255), (0, 255, 0), (255, 0, 0)]
        for slot, bgr in zip(DEFAULT_LAYOUT.slots, expected):
            center = image[slot.y + slot.height // 2, slot.x + slot.width // 2]
            assert np.abs(center.astype(int) - np.array(bgr)).max() < 16

        assert tuple(image[10, 10]) == (255, 255, 255)

    def test_overlay_drawn_on_top(self, overlay_png):
        from photobooth.imaging.codec import to_data_uri
        from photobooth.imaging.compositor import Compositor
        from photobooth.models.asset import OverlayAsset

        overlay = OverlayAsset(
            id="red-border",
            display_name="Red",
            image_uri=to_data_uri(overlay_png, ".png"),
        )
        image = decode_image(Compositor().compose(self._photos(), overlay))

        # Slot 1 pixel under the opaque red border
        assert tuple(image[60, 60]) == (0, 0, 255)
        # Slot 2 center, under the transparent window
        assert image[625, 300][1] > 230

    def test_wrong_photo_count_rejected(self, catalog):
        from photobooth.imaging.compositor import Compositor

        with pytest.raises(ValueError):
            Compositor().compose(self._photos()[:2], catalog.selected)

    def test_undecodable_overlay_fails(self):
        from photobooth.errors import CompositionAssetLoadFailure
        from photobooth.imaging.compositor import Compositor
        from photobooth.models.asset import OverlayAsset

        broken = OverlayAsset(
            id="broken",
            display_name="Broken",
            image_uri="data:image/png;base64,AAAA",
        )
        with pytest.raises(CompositionAssetLoadFailure):
            Compositor().compose(self._photos(), broken)

    def test_undecodable_photo_fails(self, catalog):
        from photobooth.errors import CompositionAssetLoadFailure
        from photobooth.imaging.compositor import Compositor
        from photobooth.models.session import CapturedPhoto

        photos = self._photos()
        photos[1] = CapturedPhoto(image=b"not a jpeg", width=500, height=350, captured_at=0.0)
        with pytest.raises(CompositionAssetLoadFailure):
            Compositor().compose(photos, catalog.selected)


class TestCodec:
    """Tests for data URI helpers."""

    def test_data_uri_carries_mime(self):
        from photobooth.imaging.codec import parse_data_uri, to_data_uri

        uri = to_data_uri(b"\x00\x01", ".webp")
        assert uri.startswith("data:image/webp;base64,")
        assert parse_data_uri(uri) == ("image/webp", b"\x00\x01")

    def test_garbage_is_not_an_image(self):
        from photobooth.imaging.codec import ImageDecodeError

        with pytest.raises(ImageDecodeError):
            decode_image(b"definitely not an image")
