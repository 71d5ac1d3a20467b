"""pomotui - Pomodoro timer for the terminal

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- The session engine owns no files, processes or threads
- Audio and network problems degrade the display, never the timer

pomotui alternates work and break sessions, renders them in the terminal,
records completed sessions to a JSON history file and optionally plays a
lofi radio stream in the background.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
