import argparse
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from tqdm import tqdm

from ..errors import AssayAnalystError
from ..models.shape import CIRCLE, RECTANGLE
from ..pipeline.calibrate import calibrate, predict_concentrations
from ..pipeline.detect_wells import detect_all, detect_wells
from ..repositories.state_cache_repository import StateCacheRepository
from ..services.color_analysis_service import ColorAnalysisService
from ..services.color_space import CHANNELS
from ..services.session_service import AnalysisSession
from ..services.shape_detector import ShapeDetector
from ..services.shape_service import ShapeService

# Load environment variables first
load_dotenv()

logger = logging.getLogger(__name__)

# Settings flags → DetectionSettings field names
SETTINGS_FLAGS = {
    "mode": "mode",
    "param1": "param1",
    "param2": "param2",
    "min_radius": "min_radius",
    "max_radius": "max_radius",
    "min_area": "min_area",
    "max_area": "max_area",
    "epsilon": "epsilon",
    "sample_area": "sample_area_percent",
    "brightness": "brightness",
    "contrast": "contrast",
    "clahe": "clahe_enabled",
    "clip_limit": "clahe_clip_limit",
    "sharpen": "sharpen_enabled",
    "sharpen_amount": "sharpen_amount",
    "blur_kernel": "blur_kernel_size",
}


# ─── Session plumbing ───────────────────────────────────────────
def open_session(cache: StateCacheRepository) -> AnalysisSession:
    state = cache.load()
    if state is None:
        return AnalysisSession()
    return AnalysisSession.from_state(state)


def _require_images(session: AnalysisSession) -> None:
    if not session.has_images:
        raise ValueError("No images loaded; run `assay-analyst load IMAGE...` first")


def _require_label(session: AnalysisSession, label: str):
    shape = session.registry.find_by_label(label)
    if shape is None:
        raise KeyError(f"No shape labelled {label!r}")
    return shape


def _settings_changes(args) -> dict:
    changes = {}
    for flag, field_name in SETTINGS_FLAGS.items():
        value = getattr(args, flag, None)
        if value is not None:
            changes[field_name] = value
    return changes


# ─── Commands ───────────────────────────────────────────────────
def cmd_load(session: AnalysisSession, args) -> None:
    start = len(session.image_paths)
    added = session.add_images(args.images)
    for offset, path in enumerate(added):
        print(f"  [{start + offset}] {path}")


def cmd_remove_image(session: AnalysisSession, args) -> None:
    removed = session.remove_image(args.index)
    print(f"Removed image {args.index} ({removed} shapes)")


def cmd_select(session: AnalysisSession, args) -> None:
    session.select_image(args.index)
    print(f"Current image: [{args.index}] {session.image_paths[args.index]}")


def cmd_roi(session: AnalysisSession, args) -> None:
    if args.clear:
        session.clear_roi()
        print("ROI cleared")
        return
    if not args.box:
        print(f"ROI: {session.roi}" if session.roi else "No ROI set")
        return
    if len(args.box) != 4:
        raise ValueError("ROI needs exactly four numbers: X Y W H")
    roi = session.set_roi(*args.box)
    print(f"ROI set to x={roi.x} y={roi.y} w={roi.width} h={roi.height}")


def cmd_detect(session: AnalysisSession, args) -> None:
    _require_images(session)
    settings = session.update_settings(**_settings_changes(args))
    detector = ShapeDetector(image_service=session.image_service, engine=session.image_service.engine)

    if args.all:
        images = ((i, session.image_at(i)) for i in range(len(session.image_paths)))
        total = detect_all(
            images, session.registry, settings, session.roi,
            detector=detector,
            progress=lambda it: tqdm(it, total=len(session.image_paths), desc="detect", ncols=70),
        )
        print(f"Detected {total} {settings.mode}s across {len(session.image_paths)} images")
        return

    shapes = detect_wells(
        session.current_image, session.current_image_index, session.registry, settings, session.roi,
        detector=detector,
    )
    if shapes:
        print(f"Detected {len(shapes)} {settings.mode}s: {', '.join(s.label for s in shapes)}")
    else:
        print(f"No {settings.mode}s found. Try adjusting the detection parameters.")


def cmd_preview(session: AnalysisSession, args) -> None:
    _require_images(session)
    settings = session.update_settings(**_settings_changes(args))
    preview = session.image_service.preview_preprocessing(session.current_image, settings, args.out)
    print(f"Preview written to {preview.path}")


def cmd_draw(session: AnalysisSession, args) -> None:
    _require_images(session)
    service = ShapeService(session.registry)
    common = dict(fraction=session.settings.sample_fraction)
    if args.kind == CIRCLE:
        x, y, radius = args.geometry
        shape = service.commit_drawn_shape(
            session.current_image, session.current_image_index, CIRCLE, x, y, radius=radius, **common
        )
    else:
        x, y, width, height = args.geometry
        shape = service.commit_drawn_shape(
            session.current_image, session.current_image_index, RECTANGLE, x, y,
            width=width, height=height, **common
        )
    if shape is None:
        print(f"Shape ignored: smaller than the minimum size of {service.min_size:g}px")
        return
    print(f"Added {shape.kind} {shape.label}  {ColorAnalysisService.format_color(shape.color, session.color_mode)}")


def cmd_rename(session: AnalysisSession, args) -> None:
    shape = _require_label(session, args.old)
    ShapeService(session.registry).rename_shape(shape.id, args.new)
    print(f"Renamed {args.old} → {args.new}")


def cmd_delete(session: AnalysisSession, args) -> None:
    shape = _require_label(session, args.label)
    ShapeService(session.registry).delete_shape(shape.id)
    print(f"Deleted {args.label}")


def cmd_shapes(session: AnalysisSession, args) -> None:
    mode = "CMYK" if args.cmyk else session.color_mode
    shapes = session.registry.all() if args.all else session.current_shapes()
    if not shapes:
        print("No shapes")
        return
    for shape in shapes:
        if shape.is_circle:
            geometry = f"({shape.x:g}, {shape.y:g}) r={shape.radius:g}"
        else:
            geometry = f"({shape.x:g}, {shape.y:g}) {shape.width:g}x{shape.height:g}"
        concentration = session.calibration.concentration_for(shape.label)
        conc = f"  conc={concentration:g}" if concentration is not None else ""
        source = "auto" if shape.auto else "manual"
        print(f"  {shape.label:<4} img={shape.image_index} {shape.kind:<9} {geometry:<24} "
              f"{ColorAnalysisService.format_color(shape.color, mode)}  [{source}]{conc}")


def cmd_summary(session: AnalysisSession, args) -> None:
    summary = ColorAnalysisService.summarize(session.current_shapes())
    if summary is None:
        print("No shapes on the current image")
        return
    print(f"Shapes:            {summary.count}")
    print(f"Average color:     {ColorAnalysisService.format_color(summary.average_color, session.color_mode)}")
    print(f"Average magnitude: {summary.average_magnitude:.2f}")


def cmd_conc(session: AnalysisSession, args) -> None:
    if session.registry.find_by_label(args.label) is None:
        logger.warning(f"No shape is labelled {args.label!r}; the point is kept but ignored by the fit")
    session.calibration.set_concentration(args.label, args.value)
    if args.value is None or not args.value.strip():
        print(f"Cleared concentration for {args.label}")
    else:
        print(f"{args.label} = {float(args.value):g}")


def cmd_fit(session: AnalysisSession, args) -> None:
    models = calibrate(session.registry.all(), session.calibration)
    for channel in CHANNELS:
        model = models.get(channel)
        if model is None:
            print(f"  {channel:<9} not fittable")
        else:
            print(f"  {channel:<9} m={model.m:.4f}  b={model.b:.4f}  R²={model.r2:.4f}")


def cmd_predict(session: AnalysisSession, args) -> None:
    if args.channel is not None and args.channel not in CHANNELS:
        raise ValueError(f"Unknown channel {args.channel!r}; choose from {', '.join(CHANNELS)}")
    rows = predict_concentrations(session.registry.all(), session.calibration, args.channel)
    for row in rows:
        known = f"{row.concentration:g}" if row.concentration is not None else "-"
        predicted = f"{row.predicted:.4f}" if row.predicted is not None else "n/a"
        print(f"  {row.label:<4} known={known:<8} predicted={predicted}")


def cmd_export(session: AnalysisSession, args) -> None:
    path = session.calibration.export_model(args.path, session.registry.all())
    print(f"Model exported to {path}")


def cmd_import(session: AnalysisSession, args) -> None:
    imported = session.calibration.import_model(args.path)
    print(f"Imported {len(imported.committed_points)} data points and "
          f"{len(imported.regression_models)} channel models")


# ─── Argument parsing ───────────────────────────────────────────
def _add_settings_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("detection settings")
    group.add_argument("--mode", choices=[CIRCLE, RECTANGLE])
    group.add_argument("--param1", type=float, help="Canny edge threshold for circles")
    group.add_argument("--param2", type=float, help="Hough accumulator threshold")
    group.add_argument("--min-radius", type=int)
    group.add_argument("--max-radius", type=int)
    group.add_argument("--min-area", type=float)
    group.add_argument("--max-area", type=float)
    group.add_argument("--epsilon", type=float, help="polygon tolerance (fraction of perimeter)")
    group.add_argument("--sample-area", type=float, help="sampled area, percent of each shape")
    group.add_argument("--brightness", type=float)
    group.add_argument("--contrast", type=float)
    group.add_argument("--clahe", action=argparse.BooleanOptionalAction, default=None)
    group.add_argument("--clip-limit", type=float)
    group.add_argument("--sharpen", action=argparse.BooleanOptionalAction, default=None)
    group.add_argument("--sharpen-amount", type=float)
    group.add_argument("--blur-kernel", type=int)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="assay-analyst", description="Colorimetric assay plate analysis")
    ap.add_argument("--state", default=None, help="session state file (default: $ASSAY_STATE_PATH)")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("load", help="add images or folders to the session")
    p.add_argument("images", nargs="+")
    p.set_defaults(func=cmd_load)

    p = sub.add_parser("remove-image", help="remove an image and its shapes")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_remove_image)

    p = sub.add_parser("select", help="make an image current")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_select)

    p = sub.add_parser("roi", help="set, show or clear the region of interest")
    p.add_argument("box", nargs="*", type=float, metavar="X Y W H")
    p.add_argument("--clear", action="store_true")
    p.set_defaults(func=cmd_roi)

    p = sub.add_parser("detect", help="detect wells on the current image")
    p.add_argument("--all", action="store_true", help="detect on every loaded image")
    _add_settings_flags(p)
    p.set_defaults(func=cmd_detect)

    p = sub.add_parser("preview", help="save the preprocessed grayscale the detector sees")
    p.add_argument("out")
    _add_settings_flags(p)
    p.set_defaults(func=cmd_preview)

    p = sub.add_parser("draw", help="add a shape by hand")
    draw = p.add_subparsers(dest="kind", required=True)
    c = draw.add_parser(CIRCLE)
    c.add_argument("geometry", nargs=3, type=float, metavar=("X", "Y", "R"))
    r = draw.add_parser(RECTANGLE)
    r.add_argument("geometry", nargs=4, type=float, metavar=("X", "Y", "W", "H"))
    p.set_defaults(func=cmd_draw)

    p = sub.add_parser("rename", help="relabel a shape")
    p.add_argument("old")
    p.add_argument("new")
    p.set_defaults(func=cmd_rename)

    p = sub.add_parser("delete", help="delete a shape")
    p.add_argument("label")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("shapes", help="list shapes")
    p.add_argument("--cmyk", action="store_true")
    p.add_argument("--all", action="store_true", help="list shapes of every image")
    p.set_defaults(func=cmd_shapes)

    p = sub.add_parser("summary", help="color summary of the current image")
    p.set_defaults(func=cmd_summary)

    p = sub.add_parser("conc", help="set (or clear, without VALUE) a known concentration")
    p.add_argument("label")
    p.add_argument("value", nargs="?")
    p.set_defaults(func=cmd_conc)

    p = sub.add_parser("fit", help="fit calibration lines for every channel")
    p.set_defaults(func=cmd_fit)

    p = sub.add_parser("predict", help="predict concentrations for every shape")
    p.add_argument("--channel", default=None)
    p.set_defaults(func=cmd_predict)

    p = sub.add_parser("export", help="export the calibration model as JSON")
    p.add_argument("path")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("import", help="import a calibration model")
    p.add_argument("path")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("clear-cache", help="forget the cached session")
    p.set_defaults(func=None)
    return ap


# ─── Entry point ────────────────────────────────────────────────
def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    args = build_parser().parse_args(argv)
    cache = StateCacheRepository(args.state)

    try:
        if args.command == "clear-cache":
            cache.clear()
            print("Session cache cleared")
            return 0

        session = open_session(cache)
        args.func(session, args)
        cache.save(session.to_state())
    except (AssayAnalystError, ValueError, KeyError, FileNotFoundError, IndexError) as err:
        logger.error(f"{type(err).__name__}: {err}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
