"""
The dynamic model factory, and the registry of hand-written model types.
"""
import logging
import typing

from dynaqlio import db as md_db
from dynaqlio.orm import model as md_model, options as md_options

logger = logging.getLogger(__name__)


class ModelRegistry(object):
    """
    A mapping of table name -> hand-written :class:`.Model` subclass.

    The registry is an explicit object; create one where the application is assembled and pass it to
    the factory.

    .. code-block:: python3

        registry = ModelRegistry()

        @registry.register("authors")
        class Authors(Model):
            table_name = "authors"
    """

    def __init__(self):
        self._models = {}

    def __contains__(self, table_name: str) -> bool:
        return table_name in self._models

    def __len__(self):
        return len(self._models)

    def __repr__(self):
        return "<ModelRegistry {}>".format(sorted(self._models))

    def register(self, table_name: str, model_type: 'typing.Type[md_model.Model]' = None):
        """
        Registers a model type for a table.

        Can be used as a decorator by omitting ``model_type``.
        """
        if model_type is None:
            def decorator(cls):
                self.register(table_name, cls)
                return cls

            return decorator

        if not (isinstance(model_type, type) and issubclass(model_type, md_model.Model)):
            raise TypeError("{!r} is not a Model subclass".format(model_type))

        logger.debug("Registered model {} for table {}".format(model_type.__name__, table_name))
        self._models[table_name] = model_type
        return model_type

    def unregister(self, table_name: str) -> 'typing.Optional[typing.Type[md_model.Model]]':
        """
        Removes the model type of a table.

        :return: The removed type, or None if none was registered.
        """
        return self._models.pop(table_name, None)

    def get(self, table_name: str) -> 'typing.Optional[typing.Type[md_model.Model]]':
        return self._models.get(table_name)

    def clear(self):
        self._models.clear()


class DynamicModelFactory(object):
    """
    Builds the model of a table by name.

    A registered model type is constructed as-is; any other table gets a generic :class:`.Model`
    bound to it.

    .. code-block:: python3

        factory = db.get_factory(registry)
        books = await factory.table("books")
    """

    def __init__(self, db: 'md_db.DatabaseInterface', registry: ModelRegistry = None):
        """
        :param db: The :class:`.DatabaseInterface` the models are bound to.
        :param registry: The :class:`.ModelRegistry` consulted first. An empty one if omitted.
        """
        self.db = db
        self.registry = registry if registry is not None else ModelRegistry()

    async def table(self, table_name: str, *, primary_key: str = None,
                    options: 'typing.Union[md_options.ModelOptions, typing.Mapping]' = None) \
            -> 'md_model.Model':
        """
        Gets a model for a table.

        :param table_name: The table name.
        :param primary_key: The primary key of a generic model; discovered when omitted.
        :param options: The options of a generic model.
        :raises TableNotFoundError: If the table does not exist.
        """
        model_type = self.registry.get(table_name)
        if model_type is not None:
            return await model_type(self.db)

        return await md_model.Model(self.db, table_name, primary_key=primary_key, options=options)
