import abc
from typing import Any


class BaseController(abc.ABC):
    @abc.abstractmethod
    def compute(self, *args: Any) -> Any:
        ...
