import importlib.metadata

DISTRIBUTION_NAME = "toolstream"


def get_version() -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


__all__ = ["DISTRIBUTION_NAME", "get_version"]
