from .common import *  # noqa
from .catalog import *  # noqa
from .manufacturing import *  # noqa
from .security_audit import *  # noqa
