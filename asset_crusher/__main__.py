"""Entry point for `python -m asset_crusher`."""

from asset_crusher.tool.asset_crusher import main

if __name__ == "__main__":
    main()
