"""
helmapi - REST facade over the Helm package manager

Exposes chart install/upgrade/uninstall and release inspection as HTTP
endpoints. All real work is delegated to the helm client.

Modules:
- api: request/response models and body decoding
- engine: helm invocation, connection configuration, error taxonomy
- releases: action adapter mapping requests onto engine commands
- middleware: request logging
"""

__version__ = "1.0.0"
