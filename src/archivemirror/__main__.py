"""
The startup module of Archive Mirror, run by `python -m archivemirror`.

Trampolines to the main module at archivemirror.main.
"""

from archivemirror.main import main

if __name__ == '__main__':
    main()
