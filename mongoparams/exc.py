class BaseMongoParamsException(Exception):
    pass


class InvalidQueryError(BaseMongoParamsException):
    """ Invalid input provided by the User """

    def __init__(self, err: str):
        super(InvalidQueryError, self).__init__('Query parameters error: {err}'.format(err=err))


class InvalidSettingsError(BaseMongoParamsException):
    """ Unknown or invalid settings given to a query builder """

    def __init__(self, names):
        self.names = sorted(names)

        super(InvalidSettingsError, self).__init__(
            'Invalid query settings: {names}'.format(names=', '.join(self.names))
        )
