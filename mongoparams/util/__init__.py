from .counting_query import CountingQuery, gather_or_cancel
from .settings_dict import QuerySettingsDict
