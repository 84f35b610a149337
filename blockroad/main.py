from __future__ import annotations

from blockroad.runtime.app import main


if __name__ == "__main__":
    main()
