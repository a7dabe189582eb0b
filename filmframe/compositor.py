# Single-photo and collage compositors: crop -> draw -> grade -> texture -> caption -> encode.
from __future__ import annotations

import asyncio
import io
import logging
import math
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from PIL import Image, ImageDraw, ImageFilter

from filmframe.constants import (
    BLEND_OVERLAY,
    BLEND_SCREEN,
    COLLAGE_STYLES,
    LAYOUT_GRID,
    LAYOUT_SCRAPBOOK,
    LAYOUT_SINGLE,
)
from filmframe.crop import CenterCropper, Cropper, smart_crop
from filmframe.decoders.image_decoder import load_image, load_images
from filmframe.errors import CanvasUnavailableError
from filmframe.layout import compute_slots, scrapbook_frame_margins
from filmframe.look_loader import load_look
from filmframe.models import FilmLook, Rect, RenderedImage, RenderSpec, Slot, SourceEntry
from filmframe.render.caption import draw_caption
from filmframe.render.downscale import fit_exact, limit_long_edge
from filmframe.render.session import DrawingSession
from filmframe.render.textures import (
    draw_doodles,
    draw_dust_specks,
    draw_grain,
    draw_grain_streaks,
    draw_light_leak,
    draw_vignette,
    plan_doodles,
    plan_dust_specks,
    plan_grain_streaks,
    plan_light_leak,
)

LOGGER = logging.getLogger(__name__)

SHADOW_COLOR_ALPHA = 0.15
SHADOW_BLUR_RADIUS = 15
SHADOW_OFFSET = (5, 10)
INNER_BORDER_RGBA = (0, 0, 0, 13)
INNER_BORDER_WIDTH = 2


@dataclass(slots=True)
class RenderOptions:
    look: FilmLook | None = None
    cropper: Cropper | None = None
    seed: int | None = None
    rng: random.Random | None = None
    quality: int | None = None
    script_font: Path | None = None
    sans_font: Path | None = None
    max_source_edge: int = 0

    def resolve_look(self) -> FilmLook:
        return self.look or load_look()

    def resolve_cropper(self) -> Cropper:
        return self.cropper or CenterCropper()

    def make_rng(self) -> random.Random:
        return self.rng or random.Random(self.seed)


def canvas_geometry(look: FilmLook, framed: bool) -> tuple[tuple[int, int], Rect]:
    """Canvas size and the photo (or collage) area inside it."""
    if not framed:
        width, height = look.frameless_size
        return (width, height), Rect(0, 0, width, height)
    width, height = look.framed_size
    photo_width = width - look.margin * 2
    photo_height = int(math.floor(photo_width * look.photo_aspect))
    if photo_width <= 0 or look.margin + photo_height > height:
        raise CanvasUnavailableError(
            f"photo area {photo_width}x{photo_height} does not fit the {width}x{height} canvas"
        )
    return (width, height), Rect(look.margin, look.margin, photo_width, photo_height)


def _quality_for(look: FilmLook, options: RenderOptions, *, framed: bool, collage: bool) -> int:
    if options.quality is not None:
        return max(1, min(100, int(options.quality)))
    if not framed:
        return look.quality["frameless"]
    return look.quality["collage" if collage else "framed"]


async def _crop_to_slot(
    image: Image.Image,
    width: int,
    height: int,
    entry: SourceEntry,
    cropper: Cropper,
) -> Image.Image:
    box = await smart_crop(cropper, image, width, height, entry.offset)
    left, top, right, bottom = box.pixel_box()
    region = image.crop((max(0, left), max(0, top), min(image.width, right), min(image.height, bottom)))
    try:
        fitted = fit_exact(region, width, height)
    except BaseException:
        region.close()
        raise
    if fitted is not region:
        region.close()
    return fitted


async def _prepare_photo(
    image: Image.Image,
    width: int,
    height: int,
    entry: SourceEntry,
    cropper: Cropper,
    max_source_edge: int,
) -> Image.Image:
    source = limit_long_edge(image, max_source_edge)
    try:
        return await _crop_to_slot(source, width, height, entry, cropper)
    finally:
        if source is not image:
            source.close()


def _encode(session: DrawingSession, quality: int) -> RenderedImage:
    buffer = io.BytesIO()
    session.canvas.save(buffer, format="JPEG", quality=quality, optimize=True, progressive=True)
    width, height = session.size
    return RenderedImage(data=buffer.getvalue(), width=width, height=height, quality=quality)


def _apply_film_finish(
    session: DrawingSession,
    rect: Rect,
    look: FilmLook,
    rng: random.Random,
    *,
    collage: bool,
    streaks: bool,
) -> None:
    opacity = look.opacity
    prefix = "collage_" if collage else ""
    with session.state(clip=rect):
        if not collage:
            with session.state(blend=BLEND_SCREEN):
                session.fill_rect(rect, look.colors["wash"], opacity["wash"])
        # collage photos are drawn ungraded; the collage grade tints the warm overlay
        with session.state(blend=BLEND_OVERLAY, grade=look.collage_grade if collage else None):
            session.fill_rect(rect, look.colors["warm"], opacity[f"{prefix}warm"])
        draw_vignette(
            session,
            rect,
            color=look.colors["vignette"],
            opacity=opacity[f"{prefix}vignette"],
            radii=look.vignette_radii,
        )
        if opacity[f"{prefix}shadow_lift"] > 0:
            with session.state(blend=BLEND_SCREEN):
                session.fill_rect(rect, look.colors["shadow_lift"], opacity[f"{prefix}shadow_lift"])
        draw_light_leak(session, rect, plan_light_leak(rng, rect))
        draw_dust_specks(session, plan_dust_specks(rng, rect))
        if streaks:
            draw_grain_streaks(session, rect, plan_grain_streaks(rng, rect))


def _scrapbook_layers(
    photo: Image.Image, slot: Slot, look: FilmLook
) -> tuple[Image.Image, tuple[int, int], Image.Image, tuple[int, int]]:
    """Rotated framed print plus its drop shadow, each with its canvas origin."""
    pad, bottom = scrapbook_frame_margins(slot)
    tile = Image.new("RGB", (slot.width + pad * 2, slot.height + pad + bottom), look.colors["frame"])
    tile.paste(photo, (pad, pad))
    ImageDraw.Draw(tile, "RGBA").rectangle(
        (pad, pad, pad + slot.width - 1, pad + slot.height - 1),
        outline=INNER_BORDER_RGBA,
        width=INNER_BORDER_WIDTH,
    )
    rotation = slot.rotation or 0.0
    rgba_tile = tile.convert("RGBA")
    tile.close()
    rotated = rgba_tile.rotate(-rotation, resample=Image.Resampling.BICUBIC, expand=True)
    rgba_tile.close()

    # the frame is taller below the photo, so its center sits below the slot center
    drop = (bottom - pad) / 2.0
    theta = math.radians(rotation)
    center_x, center_y = slot.center
    center_x -= drop * math.sin(theta)
    center_y += drop * math.cos(theta)
    origin = (int(round(center_x - rotated.width / 2.0)), int(round(center_y - rotated.height / 2.0)))

    spread = SHADOW_BLUR_RADIUS * 3
    shadow_alpha = Image.new("L", (rotated.width + spread * 2, rotated.height + spread * 2), 0)
    shadow_alpha.paste(
        rotated.getchannel("A").point(lambda value: int(round(value * SHADOW_COLOR_ALPHA))),
        (spread, spread),
    )
    shadow = Image.new("RGBA", shadow_alpha.size, (0, 0, 0, 0))
    shadow.putalpha(shadow_alpha.filter(ImageFilter.GaussianBlur(SHADOW_BLUR_RADIUS)))
    shadow_alpha.close()
    shadow_origin = (origin[0] - spread + SHADOW_OFFSET[0], origin[1] - spread + SHADOW_OFFSET[1])
    return rotated, origin, shadow, shadow_origin


async def render_single(
    entry: SourceEntry,
    caption: str = "",
    date: str = "",
    *,
    framed: bool = True,
    options: RenderOptions | None = None,
) -> RenderedImage:
    """Render one photo as a polaroid (framed) or as a bare film-look photo."""
    options = options or RenderOptions()
    look = options.resolve_look()
    cropper = options.resolve_cropper()
    rng = options.make_rng()
    size, photo_rect = canvas_geometry(look, framed)

    with DrawingSession.allocate(size, look.colors["paper"] if framed else None) as session:
        image = await load_image(entry.source)
        try:
            photo = await _prepare_photo(
                image, photo_rect.width, photo_rect.height, entry, cropper, options.max_source_edge
            )
        finally:
            image.close()

        try:
            with session.state(clip=photo_rect, grade=look.grade):
                session.draw_image(photo, (photo_rect.x, photo_rect.y))
        finally:
            photo.close()

        _apply_film_finish(session, photo_rect, look, rng, collage=False, streaks=not framed)
        draw_grain(
            session,
            rng,
            opacity=look.opacity["grain"],
            tile_size=look.grain_tile,
            band=look.grain_band,
        )
        if framed:
            draw_caption(
                session,
                photo_rect,
                look,
                caption=caption,
                date=date,
                script_font=options.script_font,
                sans_font=options.sans_font,
            )
        quality = _quality_for(look, options, framed=framed, collage=False)
        LOGGER.debug("encoding single %sx%s quality=%s", size[0], size[1], quality)
        return _encode(session, quality)


async def render_collage(
    entries: Sequence[SourceEntry],
    caption: str = "",
    date: str = "",
    *,
    style: str = LAYOUT_GRID,
    framed: bool = True,
    options: RenderOptions | None = None,
) -> RenderedImage:
    """Render up to four photos into grid or scrapbook slots on one canvas."""
    if style not in COLLAGE_STYLES:
        raise ValueError(f"unsupported collage style: {style}")
    if not entries:
        raise ValueError("collage needs at least one image")
    options = options or RenderOptions()
    look = options.resolve_look()
    cropper = options.resolve_cropper()
    rng = options.make_rng()
    size, area = canvas_geometry(look, framed)
    slots = compute_slots(len(entries), style, area)
    placed = list(entries[: len(slots)])
    if len(entries) > len(slots):
        LOGGER.info("collage places %s of %s images", len(slots), len(entries))

    with DrawingSession.allocate(size, look.colors["paper"] if framed else None) as session:
        images = await load_images([entry.source for entry in placed])
        try:
            if style == LAYOUT_SCRAPBOOK and framed:
                draw_doodles(
                    session,
                    plan_doodles(rng, area),
                    color=look.colors["doodle"],
                    opacity=look.opacity["doodle"],
                )
            with session.state(clip=area):
                for index, (entry, image, slot) in enumerate(zip(placed, images, slots)):
                    photo = await _prepare_photo(
                        image, slot.width, slot.height, entry, cropper, options.max_source_edge
                    )
                    try:
                        if slot.rotation:
                            tile, origin, shadow, shadow_origin = _scrapbook_layers(photo, slot, look)
                            session.composite(shadow, shadow_origin)
                            session.composite(tile, origin)
                            tile.close()
                            shadow.close()
                        else:
                            session.draw_image(photo, (slot.x, slot.y))
                    finally:
                        photo.close()
                    LOGGER.debug("slot %s placed at %s", index, slot)
        finally:
            for image in images:
                image.close()

        _apply_film_finish(session, area, look, rng, collage=True, streaks=True)
        draw_grain(
            session,
            rng,
            opacity=look.opacity["collage_grain"],
            tile_size=look.grain_tile,
            band=look.grain_band,
        )
        if framed and style == LAYOUT_GRID:
            draw_caption(
                session,
                area,
                look,
                caption=caption,
                date=date,
                script_font=options.script_font,
                sans_font=options.sans_font,
            )
        quality = _quality_for(look, options, framed=framed, collage=True)
        LOGGER.debug("encoding %s collage %sx%s quality=%s", style, size[0], size[1], quality)
        return _encode(session, quality)


async def render(spec: RenderSpec, options: RenderOptions | None = None) -> RenderedImage:
    if spec.layout == LAYOUT_SINGLE:
        if len(spec.images) != 1:
            raise ValueError(f"single layout takes exactly one image, got {len(spec.images)}")
        return await render_single(spec.images[0], spec.caption, spec.date, framed=spec.framed, options=options)
    return await render_collage(
        spec.images,
        spec.caption,
        spec.date,
        style=spec.layout,
        framed=spec.framed,
        options=options,
    )


def render_sync(spec: RenderSpec, options: RenderOptions | None = None) -> RenderedImage:
    return asyncio.run(render(spec, options))
