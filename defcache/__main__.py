"""Run the definition cache CLI: python -m defcache [api] ..."""

from defcache.bootstrap.entrypoints import main

if __name__ == "__main__":
    main()
