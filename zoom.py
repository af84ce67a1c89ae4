import os
import sys
import time
import warnings
from dataclasses import dataclass, replace
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

# pygame prints a banner on import unless told otherwise.
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf

if _suppress_messages:
    try:
        tf.get_logger().setLevel("ERROR")
        for handler in tf.get_logger().handlers:
            handler.setLevel("ERROR")
    except Exception:
        pass

from mandelzoom import (
    COLOR_SCHEMES,
    BudgetPolicy,
    DisplayError,
    FrameExporter,
    RunState,
    Transition,
    ViewportRect,
    WindowDisplay,
    ZoomConfig,
    finish_frame,
    parse_target,
    render_state,
)
from mandelzoom.config import BUDGET_GRANULARITIES, DEFAULT_PATH

from argparse import ArgumentParser


def select_device():
    # Place the render on the first visible GPU when there is one, else the CPU.
    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


@dataclass
class OutputConfig:
    mode: str
    frame_dir: Path | None
    gif_path: Path | None
    image_format: str
    max_frames: int | None


def build_parser():
    parser = ArgumentParser(description='Animated zoom into the Mandelbrot set that finds its own points of interest.')

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='initial iteration budget; raised as the zoom deepens',
                        metavar='MAX_ITERATIONS', default=500)

    parser.add_argument('--x-res', type=int,
                        dest='x_res', help='width of the frame in pixels',
                        metavar='X_RES', default=800)

    parser.add_argument('--y-res', type=int,
                        dest='y_res', help='height of the frame in pixels',
                        metavar='Y_RES', default=600)

    parser.add_argument('--view', type=float, nargs=4,
                        dest='view', help='initial region of the complex plane',
                        metavar=('X_MIN', 'X_MAX', 'Y_MIN', 'Y_MAX'), default=[-2.5, 1.0, -1.2, 1.2])

    parser.add_argument('--zoom-speed', type=float,
                        dest='zoom_speed', help='fraction of the distance to the target kept each frame, in (0, 1). Smaller zooms faster',
                        metavar='ZOOM_SPEED', default=0.99)

    parser.add_argument('--epsilon', type=float,
                        dest='epsilon', help='view width below which the zoom moves on to the next target',
                        metavar='EPSILON', default=1e-10)

    parser.add_argument('--target', dest='targets', action='append', metavar='X,Y[,LABEL]',
                        help='Zoom target, may be repeated to build a path. Use the --target=X,Y form for negative X.')

    parser.add_argument('--discovery-fraction', type=float,
                        dest='discovery_fraction', help='size of a discovered view relative to the exhausted one, in (0, 1)',
                        metavar='FRACTION', default=0.25)

    parser.add_argument('--iteration-increment', type=int,
                        dest='iteration_increment', help='amount added to the iteration budget at each bump',
                        metavar='INCREMENT', default=500)

    parser.add_argument('--budget-granularity', choices=BUDGET_GRANULARITIES, default='discovery',
                        help='transitions that raise the iteration budget')

    parser.add_argument('--color-scheme', choices=COLOR_SCHEMES, default='banded',
                        help='"banded" cycles every 256 iterations; "hsv" spreads the budget over the hue circle')

    parser.add_argument('--frame-interval', type=float,
                        dest='frame_interval', help='target seconds per frame; the loop sleeps off any remainder',
                        metavar='SECONDS', default=1.0 / 60.0)

    parser.add_argument('--mode', choices=['window', 'frames', 'gif'], default='window',
                        help='Show frames in a window or export them to disk.')

    parser.add_argument('--frame-dir', dest='frame_dir', type=str,
                        help='Directory in which to store numbered frames (frames mode).')

    parser.add_argument('--output', dest='output', type=str,
                        help='Destination of the GIF file (gif mode).')

    parser.add_argument('--frames', type=int,
                        dest='frames', help='stop after this many frames (required when exporting)',
                        metavar='FRAMES', default=None)

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for exported frames. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_zoom_config(opt, parser: ArgumentParser) -> ZoomConfig:
    try:
        path = tuple(parse_target(text) for text in opt.targets) if opt.targets else DEFAULT_PATH
        return ZoomConfig(
            width=opt.x_res,
            height=opt.y_res,
            initial_viewport=ViewportRect(*opt.view),
            initial_max_iterations=opt.max_iterations,
            zoom_speed=opt.zoom_speed,
            epsilon=opt.epsilon,
            path=path,
            discovery_fraction=opt.discovery_fraction,
            iteration_increment=opt.iteration_increment,
            budget_granularity=opt.budget_granularity,
            color_scheme=opt.color_scheme,
            frame_interval=opt.frame_interval,
        )
    except ValueError as exc:
        parser.error(str(exc))


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    if opt.frames is not None and opt.frames <= 0:
        parser.error("--frames must be positive.")

    image_format = (getattr(opt, "format", "png") or "png").lower().lstrip(".")
    if not image_format:
        image_format = "png"

    frame_dir: Path | None = None
    gif_path: Path | None = None

    if opt.mode == 'window':
        if opt.frame_dir is not None or opt.output is not None:
            parser.error("--frame-dir and --output are only valid when exporting.")
    else:
        if opt.frames is None:
            parser.error(f"--frames is required in {opt.mode} mode.")
        if opt.mode == 'frames':
            if opt.output is not None:
                parser.error("--output is only valid in gif mode.")
            frame_dir = Path(opt.frame_dir or "./frames").expanduser().resolve()
        else:
            if opt.frame_dir is not None:
                parser.error("--frame-dir is only valid in frames mode.")
            output_path = Path(opt.output or "movie.gif").expanduser()
            if output_path.suffix:
                if output_path.suffix.lower() != ".gif":
                    parser.error("GIF outputs must end with .gif.")
            else:
                output_path = output_path.with_suffix(".gif")
            gif_path = output_path.resolve()

    return OutputConfig(
        mode=opt.mode,
        frame_dir=frame_dir,
        gif_path=gif_path,
        image_format=image_format,
        max_frames=opt.frames,
    )


def open_display(config: ZoomConfig, output: OutputConfig):
    if output.mode == 'window':
        return WindowDisplay(config.width, config.height)
    digits = max(3, len(str(max(output.max_frames - 1, 0))))
    return FrameExporter(
        output.frame_dir,
        output.gif_path,
        image_format=output.image_format,
        digits=digits,
        max_frames=output.max_frames,
        frame_duration=max(config.frame_interval, 0.02),
    )


def run(config: ZoomConfig, display, *, max_frames=None, device=None) -> RunState:
    """Drive ``display`` until it asks to quit; return the final state."""

    policy = BudgetPolicy.from_config(config)
    state = RunState.initial(config)
    log("Zooming toward %s (%.15g, %.15g)" % (state.target.label, state.target.x, state.target.y))

    while not display.poll_quit():
        if max_frames is not None and state.frame_index >= max_frames:
            break
        started = time.perf_counter()
        if max_frames is not None:
            print("frame {0} out of {1}".format(state.frame_index, max_frames), end='\r')

        frame = render_state(state, config, device=device)
        if not display.present(frame):
            state = replace(state, frame_index=state.frame_index + 1)
            break
        state, transition = finish_frame(state, config, policy, device=device)

        if transition is Transition.ADVANCE:
            log("\nAdvancing to %s (%.15g, %.15g), budget %d"
                % (state.target.label, state.target.x, state.target.y, state.max_iterations))
        elif transition is Transition.DISCOVER:
            log("\nDiscovered target (%.15g, %.15g), budget %d"
                % (state.target.x, state.target.y, state.max_iterations))
        elif transition is Transition.FALLBACK:
            log("\nNothing left to discover, falling back to %s, budget %d"
                % (state.target.label, state.max_iterations))

        remaining = config.frame_interval - (time.perf_counter() - started)
        if remaining > 0:
            time.sleep(remaining)

    return state


def main():
    parser = build_parser()
    opt = parser.parse_args()

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    log("TensorFlow version: %s" % tf.__version__)

    config = resolve_zoom_config(opt, parser)
    output_config = resolve_output_config(opt, parser)
    device = select_device()

    try:
        display = open_display(config, output_config)
    except DisplayError as exc:
        print(exc, file=sys.stderr)
        return 1

    try:
        state = run(config, display, max_frames=output_config.max_frames, device=device)
    except DisplayError as exc:
        print(f"\n{exc}", file=sys.stderr)
        return 1
    finally:
        display.close()

    log("\nStopped after %d frames, budget %d" % (state.frame_index, state.max_iterations))
    return 0


if __name__ == '__main__':
    sys.exit(main())
