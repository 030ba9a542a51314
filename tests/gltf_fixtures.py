"""
Synthetic glTF skeletons for tests.
"""

from pathlib import Path
from pygltflib import GLTF2, Node, Scene


def skeleton_gltf() -> GLTF2:
    """
    root -> A -> B, root -> C

    A sits 10 units above root, B 5 units above A, C 3 units along +X.
    """
    return GLTF2(
        scene=0,
        scenes=[Scene(nodes=[0])],
        nodes=[
            Node(name="root", children=[1, 3]),
            Node(name="A", translation=[0.0, 10.0, 0.0], children=[2]),
            Node(name="B", translation=[0.0, 5.0, 0.0]),
            Node(name="C", translation=[3.0, 0.0, 0.0]),
        ],
    )


def write_gltf(gltf: GLTF2, directory, name: str = "skeleton.gltf") -> Path:
    path = Path(directory) / name
    gltf.save(str(path))
    return path
