"""
Shared helpers: in-memory folder layouts for building trees without disk access
"""

import os

from keysort.tree import build_tree

ROOT = "/photos/sorted"

# Root with three leaf folders
FLAT = {"animals": {}, "people": {}, "places": {}}

# Root with two folders; the first holds three leaves
NESTED = {
    "trips": {"beach": {}, "city": {}, "mountains": {}},
    "work": {},
}


def make_lister(layout, root=ROOT, calls=None):
    """Build a list_subfolders callable over a nested dict layout"""
    folders = {}

    def walk(path, children):
        folders[path] = list(children)
        for name, sub in children.items():
            walk(os.path.join(path, name), sub)

    walk(root, layout)

    def list_subfolders(path):
        if calls is not None:
            calls.append(path)
        if path not in folders:
            raise FileNotFoundError(f"No such folder: {path}")
        return folders[path]

    return list_subfolders


def make_tree(layout, root=ROOT):
    return build_tree(root, make_lister(layout, root))

