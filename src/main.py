"""Script de ejecución desde `src/` (`python -m main` con `src` como cwd).

Los prompts y las tarjetas son texto chino: en terminales Windows (cp1252)
la salida se fuerza a UTF-8 antes de importar la CLI.
"""

from __future__ import annotations

import sys

if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
