from abc import ABCMeta, abstractmethod
from collections.abc import Generator
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cimchip.cost_model.cost_model import ChipCostModelEvaluation


class Stage(metaclass=ABCMeta):
    """One step of the chip estimation. Stages are chained: each one adds its product to the kwargs and runs the
    rest of the chain, so every evaluation passes through the whole chain exactly once."""

    kwargs: dict[str, Any]

    def __init__(
        self,
        list_of_callables: list["StageCallable"],
        **kwargs: Any,
    ):
        """
        @param list_of_callables: a list of callables, that must have a signature compatible with this __init__ function
        and return a Stage instance. This is used to flexibly build iterators upon other iterators.
        @param kwargs: any keyword arguments, irrelevant to the specific class in question but passed on down
        """
        self.kwargs = kwargs
        self.list_of_callables = list_of_callables
        if self.is_leaf() and list_of_callables not in ([], tuple(), set(), None):
            raise ValueError("Leaf runnable received a non empty list_of_callables")

        if list_of_callables in ([], tuple(), set(), None) and not self.is_leaf():
            raise ValueError(
                "List of callables empty on a non leaf runnable, so nothing can be generated. "
                "Final callable in list_of_callables must return Stage instances that have is_leaf() == True"
            )

    def __iter__(self):
        return self.run()

    def is_leaf(self) -> bool:
        """Returns true if the runnable is a leaf runnable, meaning that it does not use (or thus need)
        any substages to be able to yield a result. Final element in list_of_callables must always have
        is_leaf() == True, except for that final element that has an empty list_of_callables
        """
        return False

    def run_sub_stage(self, **kwargs: Any):
        """! Instantiate the next stage with this stage's kwargs updated with `kwargs` and yield from it.

        This is how the estimator's stages hand over their products: the config parser adds `config`, the network
        parser `network`, the classification stage `classification`, the sizing and planning stages the hierarchy
        and `floorplan`, and chip assembly `resources` and `chip_area`. The replay stage at the end of the chain
        receives all of them and yields the evaluated ChipCostModelEvaluation.
        """
        sub_kwargs = self.kwargs.copy()
        sub_kwargs.update(kwargs)
        sub_stage = self.list_of_callables[0](self.list_of_callables[1:], **sub_kwargs)
        yield from sub_stage.run()

    @abstractmethod
    def run(self) -> Generator[tuple["ChipCostModelEvaluation", Any], None, None]: ...


@runtime_checkable
class StageCallable(Protocol):
    def __call__(self, list_of_callables: list["StageCallable"], **kwargs: Any) -> Stage: ...


class MainStage:
    """! Not actually a Stage, as running it does return (not yields!) a list of results instead of a generator
    Can be used as the main entry point
    """

    def __init__(self, list_of_callables: list[StageCallable], **kwargs: Any):
        self.kwargs = kwargs
        self.list_of_callables = list_of_callables

    def run(self):
        answers: list[tuple[ChipCostModelEvaluation, Any]] = []
        for cme, extra_info in self.list_of_callables[0](self.list_of_callables[1:], **self.kwargs).run():
            answers.append((cme, extra_info))
        return answers
