"""
Command line entry points.

Usage example:
  blobtrack --source realsense --lightness-tol 40 --max-hold 20

  blobtrack --source video --video clip.mp4 --fov-deg 60

Or with config file:
  blobtrack --config tracker.yaml

Offline trajectory extraction:
  blobtrack-offline --video clip.mp4 --click 412,230 --output traj.json
"""
import argparse
import logging
import sys

from .config import TrackerConfig, click_from_string, load_config, save_config

logger = logging.getLogger(__name__)


def add_tuning_args(ap: argparse.ArgumentParser):
    """Tracker tuning options shared by both commands (None = keep config value)."""
    ap.add_argument("--config", type=str, default=None, help="YAML config file")
    ap.add_argument("--lightness-tol", dest="lightness_tol", type=int, default=None,
                    help="L* tolerance (default: 50)")
    ap.add_argument("--chroma-tol", dest="chroma_tol", type=int, default=None,
                    help="a*/b* tolerance (default: 15)")
    ap.add_argument("--dilate", type=int, default=None, help="Mask dilation radius (default: 2)")
    ap.add_argument("--max-distance", dest="max_distance", type=float, default=None,
                    help="Gate distance in pixels (default: 30)")
    ap.add_argument("--max-hold", dest="max_hold", type=int, default=None,
                    help="Frames a lost target is held before dropping (default: 15)")
    ap.add_argument("--fov-deg", dest="fov_deg", type=float, default=None,
                    help="Horizontal FOV when the source has no intrinsics")
    ap.add_argument("--extrinsic-euler", dest="extrinsic_euler", type=str, default=None,
                    help="Camera-to-reference rotation as RX,RY,RZ degrees (xyz order)")
    ap.add_argument("--extrinsic-translation", dest="extrinsic_translation", type=str, default=None,
                    help="Camera-to-reference translation as TX,TY,TZ meters")
    ap.add_argument("--log-level", dest="log_level", type=str, default="INFO",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")


def create_arg_parser() -> argparse.ArgumentParser:
    """Create argument parser for the live tracker."""
    ap = argparse.ArgumentParser(
        description="Click-to-track color blob tracker with RealSense 3D localization"
    )
    add_tuning_args(ap)

    ap.add_argument("--source", type=str, default=None, choices=["realsense", "video"],
                    help="Frame source (default: realsense)")
    ap.add_argument("--video", type=str, default=None, help="Video file or webcam index for --source video")
    ap.add_argument("--serial", type=str, default=None, help="RealSense device serial")
    ap.add_argument("--width", type=int, default=None, help="Stream width (default: 1280)")
    ap.add_argument("--height", type=int, default=None, help="Stream height (default: 720)")
    ap.add_argument("--fps", type=int, default=None, help="Stream rate (default: 30)")
    ap.add_argument("--no-filters", dest="no_filters", action="store_true",
                    help="Disable disparity/spatial/temporal depth filtering")
    ap.add_argument("--no-window", dest="no_window", action="store_true",
                    help="Run headless (no preview, no click input)")
    ap.add_argument("--max-frames", dest="max_frames", type=int, default=None,
                    help="Stop after N processed frames")
    ap.add_argument("--save-config", dest="save_config", type=str, default=None,
                    help="Write the effective config to YAML and exit")
    return ap


def build_config(args) -> TrackerConfig:
    base = load_config(args.config) if args.config else None
    return TrackerConfig.from_args(args, base=base)


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv=None):
    """Live tracker entry point."""
    ap = create_arg_parser()
    args = ap.parse_args(argv)
    _setup_logging(args.log_level)

    try:
        config = build_config(args)
    except (ValueError, TypeError, FileNotFoundError) as e:
        logger.error(f"[error] Invalid configuration: {e}")
        sys.exit(1)

    if args.save_config:
        save_config(config, args.save_config)
        logger.info(f"[info] Config written to {args.save_config}")
        return

    from .app import TrackerApp

    try:
        app = TrackerApp(config)
        n = app.run(max_frames=args.max_frames)
        print(f"\n[success] Processed {n} frames")
    except KeyboardInterrupt:
        logger.info("[info] Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception(f"[error] Tracker failed: {e}")
        sys.exit(1)


def create_offline_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Offline click-to-track over a video file")
    add_tuning_args(ap)
    ap.add_argument("--video", required=True, help="Input video path")
    ap.add_argument("--click", required=True, help="Click position on the first frame: x,y")
    ap.add_argument("--stride", type=int, default=1, help="Process every Nth frame (default: 1)")
    ap.add_argument("--output", type=str, default=None, help="Save trajectory JSON")
    return ap


def offline_main(argv=None):
    """Offline tracker entry point."""
    ap = create_offline_parser()
    args = ap.parse_args(argv)
    _setup_logging(args.log_level)

    from .video_tracking import save_trajectory, track_video

    try:
        config = build_config(args)
        click = click_from_string(args.click)
        records = track_video(args.video, click, config, sample_stride=args.stride)
    except KeyboardInterrupt:
        logger.info("[info] Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"[error] Offline tracking failed: {e}")
        sys.exit(1)

    tracked = sum(1 for r in records if r["fresh"])
    print(f"\n[success] Tracked {tracked}/{len(records)} frames")
    if args.output:
        save_trajectory(records, args.output)
        print(f"  Trajectory: {args.output}")


if __name__ == "__main__":
    main()
