# srswriter/runtime package
# Event loop helpers shared by the engine, the golden harness and the CLI.
