"""
glTF/GLB Export Module

Exports composed map frames to glTF binary format for web viewers:
boundary outlines as a LINES primitive, each fern as a POINTS primitive
with its own unlit material color.
"""

import logging
from typing import Dict, Any, Iterable, List, Optional, Tuple
from pathlib import Path

import numpy as np
from pygltflib import (
    GLTF2, Scene as GLTFScene, Node, Mesh as GLTFMesh, Primitive, Accessor, BufferView, Buffer,
    Material, PbrMetallicRoughness, ARRAY_BUFFER, FLOAT, LINES, POINTS,
)
from tqdm import tqdm

from .scene import Scene

logger = logging.getLogger(__name__)

UNLIT = "KHR_materials_unlit"


class GLTFExporter:
    """
    Exports map frames to GLB.

    All geometry lives in one binary buffer; every primitive gets its
    own buffer view and POSITION accessor (with the min/max bounds glTF
    requires).
    """

    def __init__(self, embed_metadata: bool = True, outline_color: tuple = (1.0, 1.0, 1.0, 0.35)):
        """
        Initialize exporter.

        Args:
            embed_metadata: Whether to embed frame metadata in glTF extras
            outline_color: RGBA of the boundary outline material
        """
        self.embed_metadata = embed_metadata
        self.outline_color = outline_color

    def build(self, scene: Scene, metadata: Optional[Dict[str, Any]] = None) -> GLTF2:
        """
        Build the in-memory glTF document for a frame.

        Args:
            scene: Composed frame
            metadata: Extra metadata merged over the scene's own extras

        Returns:
            GLTF2 with its binary blob set
        """
        blob = bytearray()
        accessors: List[Accessor] = []
        buffer_views: List[BufferView] = []
        materials: List[Material] = []
        primitives: List[Primitive] = []

        def add_positions(points: np.ndarray) -> int:
            data = np.ascontiguousarray(points, dtype=np.float32)
            raw = data.tobytes()
            buffer_views.append(BufferView(
                buffer=0,
                byteOffset=len(blob),
                byteLength=len(raw),
                target=ARRAY_BUFFER
            ))
            blob.extend(raw)
            accessors.append(Accessor(
                bufferView=len(buffer_views) - 1,
                componentType=FLOAT,
                count=len(data),
                type="VEC3",
                max=data.max(axis=0).tolist(),
                min=data.min(axis=0).tolist()
            ))
            return len(accessors) - 1

        def add_material(name: str, rgba: Tuple[float, float, float, float]) -> int:
            materials.append(Material(
                name=name,
                pbrMetallicRoughness=PbrMetallicRoughness(
                    baseColorFactor=list(rgba),
                    metallicFactor=0.0,
                    roughnessFactor=1.0
                ),
                alphaMode="BLEND" if rgba[3] < 1.0 else "OPAQUE",
                extensions={UNLIT: {}}
            ))
            return len(materials) - 1

        if len(scene.outlines):
            segs = np.asarray(scene.outlines, dtype=np.float32).reshape(-1, 2)
            verts = np.column_stack([segs, np.zeros(len(segs), dtype=np.float32)])
            primitives.append(Primitive(
                attributes={"POSITION": add_positions(verts)},
                material=add_material("outline", tuple(self.outline_color)),
                mode=LINES
            ))

        for fern in scene.ferns:
            if fern.n_points == 0:
                continue
            primitives.append(Primitive(
                attributes={"POSITION": add_positions(fern.positions)},
                material=add_material(f"fern:{fern.key}:{fern.style.name}", (*fern.color, 1.0)),
                mode=POINTS
            ))

        gltf = GLTF2(
            scene=0,
            scenes=[GLTFScene(nodes=[0] if primitives else [])],
            nodes=[Node(mesh=0, name="rainfall_map")] if primitives else [],
            meshes=[GLTFMesh(primitives=primitives)] if primitives else [],
            materials=materials,
            accessors=accessors,
            bufferViews=buffer_views,
            buffers=[Buffer(byteLength=len(blob))] if blob else [],
        )
        if materials:
            gltf.extensionsUsed = [UNLIT]

        if self.embed_metadata:
            gltf.extras = {**scene.extras(), **(metadata or {})}

        if blob:
            gltf.set_binary_blob(bytes(blob))
        return gltf

    def export(
        self,
        scene: Scene,
        output_path: Path,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Path:
        """
        Export a frame to a GLB file.

        Args:
            scene: Composed frame
            output_path: Output file path (.glb)
            metadata: Optional metadata dictionary to embed

        Returns:
            Path to exported file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        gltf = self.build(scene, metadata)
        gltf.save(str(output_path))

        logger.info(f"Exported GLB to {output_path} ({len(scene.ferns)} ferns, {scene.n_points} points)")
        return output_path

    def export_frames(
        self,
        frames: Iterable[Tuple[str, Scene]],
        output_dir: Path,
        total: Optional[int] = None
    ) -> List[Path]:
        """
        Export (name, scene) pairs as <output_dir>/<name>.glb.

        Returns:
            Paths of exported files, in order
        """
        output_dir = Path(output_dir)
        paths = []
        for name, scene in tqdm(frames, total=total, desc="Exporting frames", unit="frame"):
            paths.append(self.export(scene, output_dir / f"{name}.glb"))
        return paths
