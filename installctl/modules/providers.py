"""
Provisioner providers.

Each provider knows which request options it requires, which of them are
secret, and how to split a request's options into plan options (safe to echo
to clients) and credentials (never echoed). Shared validation only looks a
provider up in ``PROVIDERS``, so adding one means adding a class here.
"""
from typing import Any, Dict, List, Optional, Tuple


class Provider:
    """Base class for provisioner providers."""

    name: str = ""
    # request option key -> credential key
    secret_options: Dict[str, str] = {}
    # request option key -> plan option key
    public_options: Dict[str, str] = {}
    required_options: Tuple[str, ...] = ()

    def validate(self, options: Optional[Dict[str, Any]]) -> List[str]:
        """Return one message per missing or empty required option."""
        options = options or {}
        errors = []
        for key in self.required_options:
            if not options.get(key):
                errors.append(f"provisioner.options.{key} cannot be empty")
        return errors

    def build_options(self, options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Plan options for a request, with every secret left out."""
        options = options or {}
        return {
            plan_key: options[request_key]
            for request_key, plan_key in self.public_options.items()
            if options.get(request_key)
        }

    def build_credentials(self, options: Optional[Dict[str, Any]]) -> Dict[str, str]:
        options = options or {}
        return {
            secret_key: str(options[request_key])
            for request_key, secret_key in self.secret_options.items()
            if options.get(request_key)
        }


class AWSProvider(Provider):
    name = "aws"
    secret_options = {
        "accessKeyID": "access_key_id",
        "secretAccessKey": "secret_access_key",
    }
    public_options = {
        "region": "region",
    }
    required_options = ("accessKeyID", "secretAccessKey")


PROVIDERS: Dict[str, Provider] = {
    AWSProvider.name: AWSProvider(),
}


def get_provider(name: str) -> Optional[Provider]:
    return PROVIDERS.get(name)


def valid_providers() -> List[str]:
    return list(PROVIDERS)
