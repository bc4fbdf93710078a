"""
Ordered lifecycle hook pipelines.
"""
import abc
import logging
import typing

from dynaqlio.orm import result as md_result

logger = logging.getLogger(__name__)


class Hook(abc.ABC):
    """
    The base class for a read hook.

    A hook is any awaitable callable taking ``(model, event)``; subclassing this is optional.
    """

    @abc.abstractmethod
    async def __call__(self, model, event: 'md_result.ReadEvent'):
        """
        Runs this hook.

        :param model: The :class:`.Model` the read is run on.
        :param event: The :class:`.ReadEvent` of the read.
        """


class HookPipeline(object):
    """
    An ordered list of hooks, run one after another.

    Hooks are identified by reference: adding a hook twice keeps a single entry, and removing a hook
    that is not registered does nothing.
    """

    def __init__(self, name: str):
        #: The name of this pipeline, e.g. ``before_find``.
        self.name = name

        self._hooks = []

    def __repr__(self):
        return "<HookPipeline {} hooks={}>".format(self.name, self._hooks)

    def __contains__(self, hook) -> bool:
        return any(h is hook for h in self._hooks)

    def __iter__(self):
        return iter(list(self._hooks))

    def __len__(self):
        return len(self._hooks)

    def add(self, hook: typing.Callable) -> bool:
        """
        Adds a hook to the end of this pipeline.

        :return: True if the hook was added, False if it was already present.
        """
        if hook in self:
            return False

        logger.debug("Adding hook {!r} to {}".format(hook, self.name))
        self._hooks.append(hook)
        return True

    def insert(self, index: int, hook: typing.Callable) -> bool:
        """
        Inserts a hook at a position in this pipeline.

        :return: True if the hook was added, False if it was already present.
        """
        if hook in self:
            return False

        self._hooks.insert(index, hook)
        return True

    def remove(self, hook: typing.Callable) -> bool:
        """
        Removes a hook from this pipeline.

        :return: True if the hook was removed, False if it was not present.
        """
        for i, h in enumerate(self._hooks):
            if h is hook:
                logger.debug("Removing hook {!r} from {}".format(hook, self.name))
                del self._hooks[i]
                return True

        return False

    async def invoke(self, model, event: 'md_result.ReadEvent') -> 'md_result.ReadEvent':
        """
        Runs every hook in order.

        :return: The event, as modified by the hooks.
        """
        # iterate over a copy, hooks may remove themselves
        for hook in list(self._hooks):
            await hook(model, event)

        return event
