import inspect
from typing import *

from ..exc import InvalidSettingsError


class QuerySettingsDict(dict):
    """ Query builder settings container.

        It is mainly here for nice autocompletion and documentation purposes :)
        Both `AggregationQuery` and `MongoQuery` accept it as `settings=`, but a plain dict
        with the same keys works just as well.

        However... it may allow custom tweaks for configurations, if you override it.
        Here are some ideas:

        * Project-wide defaults (e.g. a different creation timestamp field)
        * Per-collection references for populate()
        * Stricter parsing for internal APIs

        Example:

            settings = QuerySettingsDict(
                default_sort={'name': +1},
                max_limit=100,
                references={'author': 'users'},
            )
            AggregationQuery(db.articles, request.query_params, settings)
    """

    def __init__(self,
                 # --- sort
                 default_sort: Optional[Mapping[str, int]] = None,
                 # --- paginate
                 default_limit: int = 10,
                 max_limit: Optional[int] = None,
                 # --- search
                 search_options: str = 'i',
                 escape_search: bool = True,
                 # --- filter
                 strict_composite_filters: bool = False,
                 soft_delete_field: Optional[str] = 'is_deleted',
                 # --- populate
                 references: Optional[Mapping[str, str]] = None,
                 ):
        """ Settings for query builders

        :param default_sort: The sort applied when sort() has nothing to sort by.
            Default: `{'created_at': -1}`, newest first.
        :param default_limit: The page size used when the `limit` parameter is present but is not a positive number.
        :param max_limit: The maximum number of documents a page can have.
            The API user can never go any higher than that.
        :param search_options: Regular expression options for search(). Default: 'i', case-insensitive.
        :param escape_search: Escape the search term so that it is matched literally.
            Set to `False` to let the API user send regular expressions.
        :param strict_composite_filters: Raise InvalidQueryError when `or`/`and` parameters are malformed.
            By default, such clauses are logged and skipped.
        :param soft_delete_field: The field that marks a document as deleted.
            MongoQuery excludes such documents unless the parameters mention this field explicitly.
            Set to `None` to disable. Not used by AggregationQuery.
        :param references: Target collections for populate(): { path: collection name }.
            Used for paths that don't specify a `collection` themselves.
        """
        super().__init__(
            default_sort=default_sort if default_sort is not None else {'created_at': -1},
            default_limit=default_limit,
            max_limit=max_limit,
            search_options=search_options,
            escape_search=escape_search,
            strict_composite_filters=strict_composite_filters,
            soft_delete_field=soft_delete_field,
            references=dict(references or {}),
        )

    @classmethod
    def from_settings(cls, settings: Optional[Mapping] = None) -> 'QuerySettingsDict':
        """ Make settings from a dict, filling in the defaults

        :raises InvalidSettingsError: unknown setting names
        """
        if isinstance(settings, cls):
            return settings

        settings = dict(settings or {})
        invalid = set(settings) - cls.setting_names()
        if invalid:
            raise InvalidSettingsError(invalid)
        return cls(**settings)

    @classmethod
    def setting_names(cls) -> FrozenSet[str]:
        """ Names of all known settings: keyword arguments of __init__() """
        return frozenset(name
                         for name in inspect.signature(cls.__init__).parameters
                         if name != 'self')
