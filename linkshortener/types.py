from collections.abc import Callable
from datetime import datetime
from typing import Any


# Injectable "current time" source, must return an aware UTC datetime
type Clock = Callable[[], datetime]

# AppConfig configuration document
type AppConfig = dict[str, Any]
