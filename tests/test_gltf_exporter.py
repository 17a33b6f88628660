"""
Tests for GLB frame export.

Tests cover:
- Primitive layout (outline LINES, one POINTS primitive per fern)
- Accessor bounds
- Frame metadata in extras
- Round trip through a GLB file
"""

import sys
from pathlib import Path

import numpy as np
import pytest
from pygltflib import GLTF2, LINES, POINTS

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rainfall_ferns.geometry.fern import grow_fern
from rainfall_ferns.geometry.gltf_exporter import UNLIT, GLTFExporter
from rainfall_ferns.geometry.scene import Camera, Label, Scene


# ============== Fixtures ==============

@pytest.fixture
def scene():
    rng = np.random.default_rng(5)
    outlines = np.array([
        [[-10.0, -10.0], [10.0, -10.0]],
        [[10.0, -10.0], [10.0, 10.0]],
        [[10.0, 10.0], [-10.0, -10.0]],
    ])
    ferns = [
        grow_fern("kerala", "Kerala", 120.0, np.array([1.0, 2.0]), point_scale=0.1, rng=rng),
        grow_fern("bihar", "Bihar", float("nan"), np.array([-4.0, 0.0]), point_scale=0.1, rng=rng),
    ]
    return Scene(
        camera=Camera.for_viewport(100, 80),
        outlines=outlines,
        labels=[Label("Kerala", (1.0, 2.0))],
        ferns=ferns,
        year=2001,
        month="AUG",
    )


@pytest.fixture
def exporter():
    return GLTFExporter()


# ============== Build Tests ==============

class TestBuild:
    """Test in-memory document layout."""

    def test_primitives(self, exporter, scene):
        gltf = exporter.build(scene)
        primitives = gltf.meshes[0].primitives
        assert len(primitives) == 3
        assert primitives[0].mode == LINES
        assert all(p.mode == POINTS for p in primitives[1:])

    def test_accessor_counts(self, exporter, scene):
        gltf = exporter.build(scene)
        counts = [a.count for a in gltf.accessors]
        assert counts == [6, scene.ferns[0].n_points, scene.ferns[1].n_points]

    def test_accessor_bounds(self, exporter, scene):
        gltf = exporter.build(scene)
        fern = scene.ferns[0]
        accessor = gltf.accessors[1]
        np.testing.assert_allclose(accessor.min, fern.positions.min(axis=0), rtol=1e-6)
        np.testing.assert_allclose(accessor.max, fern.positions.max(axis=0), rtol=1e-6)

    def test_materials_unlit_and_colored(self, exporter, scene):
        gltf = exporter.build(scene)
        assert gltf.extensionsUsed == [UNLIT]
        fern_material = gltf.materials[1]
        assert fern_material.pbrMetallicRoughness.baseColorFactor[:3] == list(scene.ferns[0].color)
        assert UNLIT in fern_material.extensions
        assert gltf.materials[0].alphaMode == "BLEND"

    def test_extras(self, exporter, scene):
        gltf = exporter.build(scene, metadata={"source": "test"})
        assert gltf.extras["year"] == 2001
        assert gltf.extras["month"] == "AUG"
        assert gltf.extras["source"] == "test"
        regions = {r["key"]: r for r in gltf.extras["regions"]}
        assert regions["bihar"]["value"] is None
        assert regions["kerala"]["style"] == "light"

    def test_no_metadata(self, scene):
        gltf = GLTFExporter(embed_metadata=False).build(scene)
        assert not gltf.extras

    def test_empty_scene(self, exporter):
        gltf = exporter.build(Scene(camera=Camera.for_viewport(10, 10)))
        assert gltf.meshes == []
        assert gltf.buffers == []


# ============== Export Tests ==============

class TestExport:
    """Test writing GLB files."""

    def test_export_and_load(self, exporter, scene, tmp_path):
        path = exporter.export(scene, tmp_path / "nested" / "frame.glb")
        assert path.exists()
        loaded = GLTF2.load(str(path))
        assert len(loaded.meshes[0].primitives) == 3
        assert loaded.extras["month"] == "AUG"

    def test_export_frames(self, exporter, scene, tmp_path):
        frames = [("2001_08_AUG", scene), ("2001_09_SEP", scene)]
        paths = exporter.export_frames(frames, tmp_path, total=2)
        assert [p.name for p in paths] == ["2001_08_AUG.glb", "2001_09_SEP.glb"]
        assert all(p.exists() for p in paths)
