#
# roi_tools: toolkit for motion detection regions of interest
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#

import logging
from typing import Optional


def logger_get():
    """
    Get the package logger.

    Returns:
        Returns the package logger.
    """
    return logging.getLogger(__name__)


def logger_add_handler(
    handler: Optional[logging.Handler] = None,
    format: str = "",
    level: int = logging.DEBUG,
) -> logging.Handler:
    """
    Add a handler to the package logger.

    Args:
        handler: Handler to add to the logger. If None, a new StreamHandler to console is added.
        format: Format string for handler formatter. Defaults to "%(asctime)s [%(levelname)s][%(threadName)s] %(message)s".
        level: Logging level as defined in logging python package. Defaults to logging.DEBUG.

    Returns:
        Returns an instance of added handler.
    """
    logger = logger_get()

    if handler is None:
        handler = logging.StreamHandler()

    if not format:
        format = "%(asctime)s [%(levelname)s][%(threadName)s] %(message)s"
    handler.setFormatter(logging.Formatter(format))
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


# flake8: noqa

import argparse

from ._version import __version__, __version_info__
from .exceptions import *
from .zone_model import *
from .frame_surface import *
from .zone_drawing import *
from .retry_support import *
from .detection_client import *
from .status_sink import *
from .frame_snapshot import *
from .roi_session import *
from .roi_editor import RoiEditor


def _command_entrypoint(arg_str=None):
    from .roi_commands import _add_subcommands, _common_args
    from .roi_editor import _roi_editor_args

    parser = argparse.ArgumentParser(description="ROI tools")
    parser.add_argument(
        "--loglevel",
        type=str,
        default="WARNING",
        help="logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    subparsers = parser.add_subparsers(
        help="use -h flag to see help on subcommands", required=True
    )

    # editor subcommand
    subparser = subparsers.add_parser(
        "editor",
        description="Launch interactive utility for ROI editing",
        help="launch interactive utility for ROI editing",
    )
    _common_args(subparser)
    _roi_editor_args(subparser)

    # detection service subcommands
    _add_subcommands(subparsers)

    # parse args
    args = parser.parse_args(arg_str.split() if arg_str else None)
    logger_add_handler(level=getattr(logging, args.loglevel.upper(), logging.WARNING))

    # execute subcommand
    args.func(args)
