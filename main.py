import asyncio
import sys
from pathlib import Path

# Add the src directory to the Python path
# This is necessary for the executable created by PyInstaller to find the twideo module
src_path = str(Path(__file__).parent / "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from twideo.__main__ import main  # noqa: E402
from twideo.core.composition import DefaultAppComposer  # noqa: E402

if __name__ == "__main__":
    composer = DefaultAppComposer()
    asyncio.run(main(composer))
