"""Azure provider (not implemented)."""

from .unimplemented import UnimplementedProvider

PROVIDER_TYPE = "azure"

provider = UnimplementedProvider(PROVIDER_TYPE)
