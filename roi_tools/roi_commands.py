#
# roi_commands.py: detection service command-line utilities
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements command-line subcommands to query and modify camera detection
# configuration on the motion detection service.
#

import json
import cv2
from . import environment as env
from .detection_client import DetectionClient
from .exceptions import MissingNetworkIdError
from .image_tools import decode_base64_image
from .zone_model import load_zones_json, to_wire


def _common_args(parser, with_network_id: bool = True):
    """
    Define arguments common to all service subcommands

    Args:
        parser: argparse parser object to be stuffed with args
        with_network_id: add camera network ID argument
    """
    parser.add_argument(
        "--url", type=str, default="", help="detection service base URL (default: $ROI_API_URL)"
    )
    parser.add_argument(
        "--device", type=str, default="", help="device ID (default: $ROI_DEVICE_ID)"
    )
    parser.add_argument(
        "--token", type=str, default="", help="access token (default: $ROI_API_TOKEN)"
    )
    if with_network_id:
        parser.add_argument(
            "--network-id",
            type=str,
            default="",
            help="camera network ID (default: $ROI_NETWORK_ID)",
        )


def _client(args) -> DetectionClient:
    return DetectionClient(
        base_url=args.url or None,
        device_id=args.device or None,
        token=args.token or None,
    )


def _network_id(args) -> str:
    network_id = args.network_id or env.get_network_id()
    if not network_id:
        raise MissingNetworkIdError()
    return network_id


def _print_json(obj):
    print(json.dumps(obj, indent=4, default=lambda o: getattr(o, "__dict__", str(o))))


def _status_run(args):
    with _client(args) as client:
        _print_json(client.get_status(_network_id(args)))


def _enable_run(args):
    with _client(args) as client:
        _print_json(client.enable_detection(_network_id(args)))


def _disable_run(args):
    with _client(args) as client:
        _print_json(client.disable_detection(_network_id(args)))


def _save_run(args):
    zones = load_zones_json(args.zones_file) if args.zones_file else []
    with _client(args) as client:
        _print_json(
            client.save_config(
                _network_id(args),
                to_wire(zones),
                args.sensitivity,
                args.blur,
                args.morphology,
            )
        )


def _frame_run(args):
    with _client(args) as client:
        img = decode_base64_image(client.get_frame(_network_id(args)))
    cv2.imwrite(args.out, img)
    print(f"Frame {img.shape[1]}x{img.shape[0]} saved to {args.out}")


def _cameras_run(args):
    with _client(args) as client:
        _print_json(client.get_all_cameras())


def _detections_run(args):
    with _client(args) as client:
        _print_json(client.get_active_detections())


def _add_subcommands(subparsers):
    """
    Define all service subcommands

    Args:
        subparsers: argparse subparsers object
    """

    subparser = subparsers.add_parser(
        "status", help="show detection status and configuration of a camera"
    )
    _common_args(subparser)
    subparser.set_defaults(func=_status_run)

    subparser = subparsers.add_parser("enable", help="enable detection of a camera")
    _common_args(subparser)
    subparser.set_defaults(func=_enable_run)

    subparser = subparsers.add_parser("disable", help="disable detection of a camera")
    _common_args(subparser)
    subparser.set_defaults(func=_disable_run)

    subparser = subparsers.add_parser(
        "save",
        help="save ROI configuration of a camera; without zones file clears configuration",
    )
    _common_args(subparser)
    subparser.add_argument(
        "--zones-file", type=str, default="", help="JSON file with zones to save"
    )
    subparser.add_argument(
        "--sensitivity", type=int, default=env.DEFAULT_SENSITIVITY, help="detection sensitivity"
    )
    subparser.add_argument("--blur", type=int, default=env.DEFAULT_BLUR, help="blur parameter")
    subparser.add_argument(
        "--morphology", type=int, default=env.DEFAULT_MORPHOLOGY, help="morphology parameter"
    )
    subparser.set_defaults(func=_save_run)

    subparser = subparsers.add_parser(
        "clear", help="clear ROI configuration of a camera"
    )
    _common_args(subparser)
    subparser.set_defaults(
        func=_save_run,
        zones_file="",
        sensitivity=env.DEFAULT_SENSITIVITY,
        blur=env.DEFAULT_BLUR,
        morphology=env.DEFAULT_MORPHOLOGY,
    )

    subparser = subparsers.add_parser("frame", help="fetch single camera frame")
    _common_args(subparser)
    subparser.add_argument(
        "--out", type=str, default="frame.jpg", help="image file path to save frame"
    )
    subparser.set_defaults(func=_frame_run)

    subparser = subparsers.add_parser(
        "cameras", help="list all cameras of the device with detection status"
    )
    _common_args(subparser, with_network_id=False)
    subparser.set_defaults(func=_cameras_run)

    subparser = subparsers.add_parser(
        "detections", help="list active detections of the device"
    )
    _common_args(subparser, with_network_id=False)
    subparser.set_defaults(func=_detections_run)
