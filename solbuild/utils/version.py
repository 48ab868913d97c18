from functools import lru_cache


@lru_cache(maxsize=None)
def get_package_version(package_name: str) -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version(package_name)
    except PackageNotFoundError:
        # running from a source checkout
        return "0.0.0+unknown"
