"""Socket event handlers; importing this package registers them on ``sio``."""

from . import chat  # noqa: F401
from . import huddles  # noqa: F401
from . import presence  # noqa: F401
