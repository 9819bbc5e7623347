#!/usr/bin/env python3
"""
Shim module so the server can be started from a source checkout with
``python main.py``. The implementation lives in flutter_web_server.server;
this shim re-exports the public API used by the tests and provides the same
console entry point.
"""
# Import the real implementation; support running from source without install (src layout)
try:
    from flutter_web_server.server import (  # type: ignore F401
        DevHandler,
        ServerConfiguration,
        config_from_env,
        create_server,
        find_free_port,
        main as _main,
    )
except ModuleNotFoundError:  # pragma: no cover - fallback for local runs
    import os
    import sys as _sys
    here = os.path.dirname(__file__)
    src = os.path.join(here, "src")
    if os.path.isdir(src) and src not in _sys.path:
        _sys.path.insert(0, src)
    from flutter_web_server.server import (  # type: ignore F401
        DevHandler,
        ServerConfiguration,
        config_from_env,
        create_server,
        find_free_port,
        main as _main,
    )

__all__ = [
    "DevHandler",
    "ServerConfiguration",
    "config_from_env",
    "create_server",
    "find_free_port",
    "main",
]


def main():
    return _main()


if __name__ == "__main__":
    main()
