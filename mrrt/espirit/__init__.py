from .calib import *  # noqa
from .coils import *  # noqa
from .sampling import *  # noqa
from .sim import *  # noqa
from .version import __version__  # noqa
