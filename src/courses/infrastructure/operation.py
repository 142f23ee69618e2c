import asyncio
from abc import ABC, abstractmethod
from collections.abc import Iterable

from attrs import field, frozen

from courses.infrastructure.backend import Backend

DEFAULT_MAX_CONCURRENCY = 8


@frozen
class Operation(ABC):
    @abstractmethod
    async def execute(self, backend: Backend, *args, **kwargs) -> None:
        """Execute the operation, writing its results through the backend."""
        ...


@frozen
class Sequential(Operation):
    operations: Iterable[Operation]

    async def execute(self, backend: Backend, *args, **kwargs) -> None:
        for operation in self.operations:
            await operation.execute(backend, *args, **kwargs)

    def __attrs_pre_init__(self):
        super().__init__()


# To avoid problem reports from PyCharm
def make_list(it: Iterable[Operation]) -> list[Operation]:
    return list(it)


@frozen
class Concurrently(Operation):
    operations: list[Operation] = field(converter=make_list)
    max_concurrency: int | None = field(default=DEFAULT_MAX_CONCURRENCY)

    async def execute(self, backend: Backend, *args, **kwargs) -> None:
        # max_concurrency=None means unbounded concurrency
        if self.max_concurrency is None:
            await asyncio.gather(
                *[operation.execute(backend, *args, **kwargs) for operation in self.operations]
            )
        else:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def execute_with_limit(operation: Operation):
                async with semaphore:
                    await operation.execute(backend, *args, **kwargs)

            await asyncio.gather(*[execute_with_limit(op) for op in self.operations])

    def __attrs_pre_init__(self):
        super().__init__()
