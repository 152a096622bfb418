from __future__ import annotations

from typing import Dict


def load_class_names(metadata_path: str) -> Dict[int, str]:
    """
    Load class names for labelling detections.

    Two formats are understood:

    - plain text, one name per line (e.g. `coco-classes.txt`); the n-th non-empty
      line is class n
    - an `id: name` mapping under a `names:` header:

        names:
          0: person
          1: bicycle

    Anything before a `names:` header is discarded once the header is seen.
    """

    names: Dict[int, str] = {}
    mapping = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            if line == "names:":
                mapping = True
                names = {}
            elif not mapping:
                names[len(names)] = line
            else:
                key, sep, value = line.partition(":")
                if sep and key.strip().isdigit():
                    names[int(key.strip())] = value.strip().strip("'\"")

    return names
