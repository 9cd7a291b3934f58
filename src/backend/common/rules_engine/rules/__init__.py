from .common_core_1000 import COMMON_CORE_1000
from .entity_reference_core_4604 import ENTITY_REFERENCE_CORE_4604
from .error_core_4002 import ERROR_CORE_4002
from .feed_core_4000 import FEED_CORE_4000
from .metadata_core_2010 import METADATA_CORE_2010

__all__ = [
    "COMMON_CORE_1000",
    "ENTITY_REFERENCE_CORE_4604",
    "ERROR_CORE_4002",
    "FEED_CORE_4000",
    "METADATA_CORE_2010",
]
