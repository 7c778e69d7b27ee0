#
# environment.py: environment settings support
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements functions to operate with various environment settings
#

import dotenv, os, importlib, types
from typing import Optional, Any

# environment variable names
var_TestMode = "TEST_MODE"
var_Token = "ROI_API_TOKEN"
var_ApiUrl = "ROI_API_URL"
var_DeviceId = "ROI_DEVICE_ID"
var_NetworkId = "ROI_NETWORK_ID"

# default detection service location
default_api_url = "http://localhost:8000/device-detection"

# default detection tuning parameters
DEFAULT_SENSITIVITY = 1000
DEFAULT_BLUR = 20
DEFAULT_MORPHOLOGY = 20

# default retry policy
MAX_RETRIES = 3
RETRY_DELAY_S = 1.0

# default HTTP request timeout, seconds
REQUEST_TIMEOUT_S = 10.0


def reload_env(custom_file: str = "env.ini"):
    """Reload environment variables from file
    custom_file - name of the custom env file to try first;
        CWD, and ../CWD are searched for the file;
        if it is None or does not exist, `.env` file is loaded
    """

    if get_test_mode():
        return

    env_file = dotenv.find_dotenv(custom_file, usecwd=True)

    dotenv.load_dotenv(
        dotenv_path=env_file if env_file else None, override=True
    )  # load environment variables from file


def get_var(var: Optional[str], default_val: Any = None) -> Any:
    """Returns environment variable value"""
    if var is not None and var.isupper():  # treat `var` as env. var. name
        ret = os.getenv(var)
        if ret is None:
            if default_val is None:
                raise Exception(
                    f"Please define environment variable {var} in `.env` or `env.ini` file located in your CWD"
                )
            else:
                ret = default_val
    else:  # treat `var` literally
        ret = var
    return ret


def get_test_mode() -> bool:
    """Returns enable status of test mode from environment"""
    return bool(os.getenv(var_TestMode))


def get_token() -> Optional[str]:
    """Returns detection service access token from .env file, or None if not defined"""
    reload_env()  # reload environment variables from file
    return os.getenv(var_Token) or None


def get_api_url() -> str:
    """Returns detection service base URL from .env file"""
    reload_env()
    return get_var(var_ApiUrl, default_api_url).rstrip("/")


def get_device_id() -> str:
    """Returns device ID from .env file"""
    reload_env()
    return get_var(var_DeviceId)


def get_network_id() -> Optional[str]:
    """Returns default camera network ID from .env file, or None if not defined"""
    reload_env()
    return os.getenv(var_NetworkId) or None


def import_optional_package(
    pkg_name: str, custom_message: Optional[str] = None
) -> types.ModuleType:
    """Import package with given name.
    Returns the package object.
    Raises error message if the package is not installed"""

    try:
        return importlib.import_module(pkg_name)
    except ModuleNotFoundError as e:
        if custom_message:
            raise Exception(custom_message)
        else:
            raise Exception(
                f"\n*** Error loading '{pkg_name}' package: {e}. Not installed?\n"
            )
