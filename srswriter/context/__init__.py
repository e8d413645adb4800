"""
srswriter/context - Project context sources for prompt assembly.

- environment: shallow directory listing of the project root
- outline: SRS table of contents and requirements data
- providers: protocols for host-supplied services plus file-backed defaults
"""
