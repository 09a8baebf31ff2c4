import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from climate_seal.database import engine, init_db  # noqa: E402
from climate_seal.models import Base  # noqa: E402


def main():
    init_db()
    print(f"Created tables on {engine.url.render_as_string(hide_password=True)}:")
    for name in sorted(Base.metadata.tables):
        print(f"  - {name}")


if __name__ == "__main__":
    main()
