"""Amazon EC2 provider (not implemented)."""

from .unimplemented import UnimplementedProvider

PROVIDER_TYPE = "ec2"

provider = UnimplementedProvider(PROVIDER_TYPE)
