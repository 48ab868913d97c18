import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union


@contextmanager
def change_cwd(path: Union[str, Path]) -> Iterator[Path]:
    """
    Run the block with `path` as the current working directory. Relative paths in config files are
    resolved inside this context, so that they are relative to the directory of the declaring file.
    """
    target = Path(path).resolve()
    previous = Path.cwd()
    os.chdir(target)
    try:
        yield target
    finally:
        os.chdir(previous)
