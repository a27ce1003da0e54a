from ..params import QueryParams, filter_applicable
from ..util.settings_dict import QuerySettingsDict


class ParamsHandlerBase:
    """ An implementation of a handler for query parameters

        Every subclass handles a single feature: search, filter, sort, etc.
        Handlers only compile expressions: they know nothing of the backend that's going to use them.
        AggregationQuery would put the results into pipeline stages, MongoQuery would apply them to a find() query.
    """

    #: Name of the query parameter this object is capable of handling
    query_param_name = None

    def __init__(self, params, settings=None):
        """ Initialize the handler with query parameters

        This method does *not* compile anything just yet: call input() for that.

        :param params: Query parameters
        :type params: QueryParams | dict
        :param settings: Query builder settings
        :type settings: QuerySettingsDict | dict | None
        """
        self.params = QueryParams.wrap(params)
        self.settings = QuerySettingsDict.from_settings(settings)

        # Has the input() method been called already?
        self.input_received = False

        #: The allow-list given to input()
        self.applicable_fields = None

    def input(self, applicable_fields=None):
        """ Receive the allow-list of fields and compile the input

        :param applicable_fields: Field names this handler may use. `None` or empty allows everything.
        :type applicable_fields: Iterable[str] | None
        :rtype: ParamsHandlerBase
        """
        self.applicable_fields = list(applicable_fields) if applicable_fields else None
        self.input_received = True
        return self

    def filter_applicable(self, names):
        """ Drop names not present in the allow-list """
        return filter_applicable(names, self.applicable_fields)

    def is_input_empty(self):
        """ Test whether the handler has nothing to contribute """
        raise NotImplementedError()

    def get_final_input_value(self):
        """ Get the compiled value of the handler """
        raise NotImplementedError()

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, self.get_final_input_value())
