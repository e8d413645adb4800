"""
srswriter/config - Assembly settings and the specialist registry.

Usage:
    from srswriter.config.assembly_config import load_settings
    settings = load_settings()
"""
