# Policy registry mapping policy names to classes.

from typing import Dict, Type

from .content_filter import ContentFilterPolicy
from .control_policy import ControlPolicy
from .duplicate_delay import DuplicateDelayPolicy
from .request_logging import RequestLoggingPolicy
from .send_backend_request import SendBackendRequestPolicy
from .serial_policy import SerialPolicy

# Registry mapping policy names (as used in serialization/config) to their classes
POLICY_NAME_TO_CLASS: Dict[str, Type["ControlPolicy"]] = {
    "ContentFilter": ContentFilterPolicy,
    "DuplicateDelay": DuplicateDelayPolicy,
    "RequestLogging": RequestLoggingPolicy,
    "SendBackendRequest": SendBackendRequestPolicy,
    "SerialPolicy": SerialPolicy,
}

POLICY_CLASS_TO_NAME: Dict[Type["ControlPolicy"], str] = {v: k for k, v in POLICY_NAME_TO_CLASS.items()}
