from __future__ import annotations

import argparse
import sys
from pathlib import Path

import cv2

from yolo_overlay import (
    DecoderConfig,
    FpsCounter,
    InitializationFailure,
    LatestFrameWorker,
    OverlayConfig,
    draw_detections,
    draw_status,
    load_overlay_config,
    load_pipeline,
    prepare_input,
    setup_logging,
)
from yolo_overlay.config import collect_cli_dests, merge_cli_overrides


_ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def _upright(frame, rotation: int):
    # Boxes are normalized to the upright model input, so draw on the upright frame.
    if rotation % 360 == 0:
        return frame
    return cv2.rotate(frame, _ROTATE_CODES[rotation % 360])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a detection model on a camera/video/image and draw the overlay.")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--image", default=None, help="Path to an input image.")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")
    parser.add_argument("--config", default=None, help="Optional JSON overlay config; CLI flags override it.")
    parser.add_argument("--model", default="Models/yolov5s.tflite", help="Path to a model (.tflite/.onnx/.torchscript).")
    parser.add_argument("--labels", default="Models/classes.txt", help="Label file, one class name per line.")
    parser.add_argument("--backend", default=None, help="Force backend: litert / onnxruntime / torchscript.")
    parser.add_argument("--conf", type=float, default=0.25, help="Confidence threshold.")
    parser.add_argument("--threads", type=int, default=4, help="Inference threads.")
    parser.add_argument("--imgsz", type=int, default=None, help="Input size for models with a dynamic input shape.")
    parser.add_argument("--pixel-coordinates", action="store_true", help="Model emits boxes in input pixels.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CPUExecutionProvider".',
    )
    parser.add_argument("--rotation", type=int, default=0, help="Clockwise rotation (0/90/180/270) to make frames upright.")
    parser.add_argument("--show", action="store_true", help="Show a window with the overlay.")
    parser.add_argument("--out", default=None, help="Optional output path (image or video) to save the overlay.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N displayed frames (0 = no limit).")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    return parser


def resolve_config(parser: argparse.ArgumentParser, argv) -> tuple:
    args = parser.parse_args(argv)
    if args.config:
        cfg = load_overlay_config(Path(args.config))
        cfg = merge_cli_overrides(cfg, args, collect_cli_dests(parser, argv))
    else:
        providers = None
        if args.onnx_providers:
            providers = tuple(p.strip() for p in str(args.onnx_providers).split(",") if p.strip())
        cfg = OverlayConfig(
            model=args.model,
            labels=args.labels,
            backend=args.backend,
            conf_threshold=args.conf,
            num_threads=args.threads,
            onnx_providers=providers,
            pixel_coordinates=bool(args.pixel_coordinates),
            input_size=args.imgsz,
            log_level=args.log_level,
        )
    return args, cfg


def main(argv=None) -> int:
    parser = build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    args, cfg = resolve_config(parser, argv)
    setup_logging(cfg.log_level)

    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")
    if args.rotation % 90 != 0:
        raise ValueError("--rotation must be a multiple of 90")

    try:
        pipeline = load_pipeline(
            cfg.model,
            cfg.labels,
            backend=cfg.backend,
            decoder_cfg=DecoderConfig(conf_threshold=cfg.conf_threshold, pixel_coordinates=cfg.pixel_coordinates),
            num_threads=cfg.num_threads,
            onnx_providers=cfg.onnx_providers,
            input_size=(cfg.input_size, cfg.input_size) if cfg.input_size else None,
        )
    except InitializationFailure as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    def detect(frame):
        return pipeline.run(prepare_input(frame, pipeline.metadata, rotation_degrees=args.rotation))

    # Default behavior stays image-based when no source is provided.
    image_path = args.image or (None if (args.video is not None or args.webcam is not None) else "Media/example.jpg")

    try:
        if image_path is not None:
            return _run_image(args, image_path, detect)
        return _run_stream(args, detect)
    finally:
        pipeline.shutdown()


def _run_image(args: argparse.Namespace, image_path: str, detect) -> int:
    img = cv2.imread(image_path)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {image_path}")

    detections = detect(img)
    vis = draw_detections(_upright(img, args.rotation), detections, show_score=True)
    if args.out:
        ok = cv2.imwrite(args.out, vis)
        if not ok:
            raise RuntimeError(f"Failed to write output image: {args.out}")

    if args.show:
        cv2.imshow("detections", vis)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    for det in detections:
        print(det.class_name, round(det.confidence, 3), det.as_cxcywh())

    return 0


def _run_stream(args: argparse.Namespace, detect) -> int:
    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {args.video}")
    else:
        cam_index = 0 if args.webcam is None else int(args.webcam)
        cap = cv2.VideoCapture(cam_index)
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {cam_index}")

    writer = None
    shown = 0
    fps = FpsCounter()
    worker = LatestFrameWorker(detect)

    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break

            # Frames arriving while the detector is busy are dropped, never queued.
            worker.submit(frame)
            detections = worker.latest() or []

            vis = draw_detections(_upright(frame, args.rotation), detections, show_score=True)
            draw_status(vis, len(detections), fps.tick())

            if args.out and writer is None:
                src_fps = cap.get(cv2.CAP_PROP_FPS)
                if src_fps is None or src_fps <= 0:
                    src_fps = 30.0
                h, w = vis.shape[:2]
                fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                writer = cv2.VideoWriter(args.out, fourcc, src_fps, (w, h))
                if not writer.isOpened():
                    raise RuntimeError(f"Failed to open video writer: {args.out}")

            if writer is not None:
                writer.write(vis)

            if args.show:
                cv2.imshow("detections", vis)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break

            shown += 1
            if args.max_frames and shown >= args.max_frames:
                break

    finally:
        worker.close()
        cap.release()
        if writer is not None:
            writer.release()
        if args.show:
            cv2.destroyAllWindows()

    stats = worker.stats()
    print(f"Frames: {stats.submitted}, processed: {stats.processed}, dropped: {stats.dropped}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
