"""
hopwatch - Continuous Network Path Monitor

Entry point for running as a module:
    python -m hopwatch <target>
"""

from .cli import main

if __name__ == '__main__':
    main()
