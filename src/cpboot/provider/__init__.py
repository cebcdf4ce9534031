"""Built-in environment providers.

Importing this package registers them.
"""

from ..environs.registry import register_provider
from . import azure, ec2
from .local import PROVIDER_TYPE as LOCAL_PROVIDER_TYPE
from .local import LocalProvider

register_provider(LOCAL_PROVIDER_TYPE, LocalProvider())
register_provider(azure.PROVIDER_TYPE, azure.provider)
register_provider(ec2.PROVIDER_TYPE, ec2.provider)
