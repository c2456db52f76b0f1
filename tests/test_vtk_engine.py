import numpy as np
import pytest
import vtk
from vtkmodules.util.numpy_support import numpy_to_vtk

from mview.core.material import MaterialParams
from mview.core.resource_swap import LoadError
from mview.engine.vtk_engine import VtkSceneEngine, resolve_model_path
from mview.utils import vtk_helpers

TRIANGLES_OBJ = """\
v 0 0 0
v 1 0 0
v 0 1 0
v 0 0 1
f 1 2 3
f 1 3 4
"""


@pytest.fixture
def models(tmp_path):
    (tmp_path / "tri.obj").write_text(TRIANGLES_OBJ, encoding="utf-8")
    (tmp_path / "notes.txt").write_text("not a mesh", encoding="utf-8")
    return tmp_path


@pytest.fixture
def engine(models):
    return VtkSceneEngine(vtk.vtkRenderer(), models_base=models)


def _actor_count(renderer):
    return renderer.GetActors().GetNumberOfItems()


def test_resolve_model_path(tmp_path):
    assert resolve_model_path("a.glb", tmp_path) == tmp_path / "a.glb"
    absolute = tmp_path / "b.glb"
    assert resolve_model_path(str(absolute)) == absolute


def test_load_obj(engine):
    resource = engine.load_resource("tri.obj")
    assert resource.identifier == "tri.obj"
    assert len(resource.actors) == 1
    assert resource.number_of_points == 4
    assert _actor_count(engine.renderer) == 0


def test_missing_file_raises_load_error(engine):
    with pytest.raises(LoadError) as info:
        engine.load_resource("nothing.glb")
    assert info.value.identifier == "nothing.glb"
    assert "not found" in info.value.reason


def test_unsupported_suffix_raises_load_error(engine):
    with pytest.raises(LoadError, match="unsupported"):
        engine.load_resource("notes.txt")


def test_attach_detach(engine):
    resource = engine.load_resource("tri.obj")
    engine.attach(resource)
    assert _actor_count(engine.renderer) == 1
    engine.detach(resource)
    assert _actor_count(engine.renderer) == 0


def test_dispose_is_idempotent(engine):
    resource = engine.load_resource("tri.obj")
    engine.dispose(resource)
    engine.dispose(resource)
    assert resource.disposed
    assert resource.actors == []


def test_apply_material(engine):
    resource = engine.load_resource("tri.obj")
    params = MaterialParams(color=(1.0, 0.0, 0.0), roughness=0.3, metalness=0.4, transmission=0.0)
    engine.apply_material(resource, params)
    prop = resource.actors[0].GetProperty()
    pbr = vtk.vtkProperty()
    pbr.SetInterpolationToPBR()
    assert prop.GetInterpolation() == pbr.GetInterpolation()
    assert prop.GetColor() == pytest.approx((1.0, 0.0, 0.0))
    assert prop.GetRoughness() == pytest.approx(0.3)
    assert prop.GetMetallic() == pytest.approx(0.4)
    assert prop.GetOpacity() == pytest.approx(1.0)


def test_floor_replaces_previous(engine):
    engine.add_floor()
    engine.add_floor(size=4.0, grid_size=1.0)
    assert _actor_count(engine.renderer) == 1
    prop = engine.floor.GetProperty()
    assert prop.GetMetallic() == pytest.approx(0.25)
    assert prop.GetRoughness() == pytest.approx(0.65)


def test_missing_environment_keeps_scene_usable(engine, tmp_path):
    assert engine.load_environment(tmp_path / "missing.hdr") is False
    assert engine.skybox is None


def test_set_camera_pose(engine):
    engine.set_camera_pose((0.0, 2.0, 5.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    camera = engine.renderer.GetActiveCamera()
    assert camera.GetPosition() == pytest.approx((0.0, 2.0, 5.0))
    assert camera.GetFocalPoint() == pytest.approx((0.0, 0.0, 0.0))


def _spot_texture(width=16, height=8):
    arr = np.zeros((height, width), dtype=np.float32)
    arr[4, 8] = 100.0
    image = vtk.vtkImageData()
    image.SetDimensions(width, height, 1)
    image.GetPointData().SetScalars(numpy_to_vtk(arr.ravel(), deep=True))
    texture = vtk.vtkTexture()
    texture.SetInputData(image)
    return texture


def test_blurred_texture_is_downsampled_and_smoothed():
    blurred = vtk_helpers.blurred_texture(_spot_texture(), 0.8)
    source = blurred.GetInputAlgorithm()
    source.Update()
    output = source.GetOutput()

    assert output.GetDimensions() == (4, 2, 1)
    lo, hi = output.GetPointData().GetScalars().GetRange()
    assert 0.0 < hi < 100.0 / 16


def test_zero_blurriness_keeps_texture():
    texture = _spot_texture()
    assert vtk_helpers.blurred_texture(texture, 0.0) is texture
