"""VTK implementation of the scene engine used by the viewer core."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import vtk

from mview.core.geometry_utils import Vector3
from mview.core.material import MaterialParams
from mview.core.resource_swap import LoadError
from mview.utils import vtk_helpers
from mview.utils.log_util import log_io
from mview.utils.resource_paths import models_dir

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class MeshResource:
    """A loaded model: one actor per mesh of the source file."""
    identifier: str
    path: Path
    actors: list[vtk.vtkActor] = field(default_factory=list)
    disposed: bool = False

    @property
    def number_of_points(self) -> int:
        return sum(a.GetMapper().GetInput().GetNumberOfPoints()
                   for a in self.actors if a.GetMapper() is not None)


def resolve_model_path(identifier: str, base_dir: Path | None = None) -> Path:
    """Absolute paths are used as is, anything else is looked up in the models directory."""
    path = Path(identifier).expanduser()
    if path.is_absolute():
        return path
    return (base_dir or models_dir()) / path


class VtkSceneEngine:
    """
    SceneEngine backed by a vtkRenderer.

    load_resource() only builds pipeline objects and may run on a worker
    thread. Everything else touches the renderer and must run on the GUI thread.
    """

    FLOOR_METALNESS = 0.25
    FLOOR_ROUGHNESS = 0.65
    BACKGROUND_BLURRINESS = 0.8

    def __init__(self, renderer: vtk.vtkRenderer, view_angle: float = 75.0,
                 models_base: Path | None = None) -> None:
        self.renderer = renderer
        self.models_base = models_base
        self.camera = renderer.GetActiveCamera()
        self.camera.SetViewAngle(view_angle)
        self.floor: vtk.vtkActor | None = None
        self.skybox: vtk.vtkSkybox | None = None

    # =====================================================
    # Resources
    # =====================================================

    @log_io()
    def load_resource(self, identifier: str) -> MeshResource:
        path = resolve_model_path(identifier, self.models_base)
        if not path.is_file():
            raise LoadError(identifier, f"file not found: {path}")
        if path.suffix.lower() not in vtk_helpers.MESH_SUFFIXES:
            raise LoadError(identifier, f"unsupported format: {path.suffix}")

        try:
            data = vtk_helpers.read_mesh_file(path)
        except Exception as e:
            raise LoadError(identifier, str(e)) from e

        resource = MeshResource(identifier=identifier, path=path)
        for polydata in vtk_helpers.iter_polydata(data):
            mapper = vtk.vtkPolyDataMapper()
            mapper.SetInputData(vtk_helpers.with_normals(polydata))
            actor = vtk.vtkActor()
            actor.SetMapper(mapper)
            resource.actors.append(actor)

        if not resource.actors:
            raise LoadError(identifier, "file contains no geometry")
        logger.info("Loaded %s: %d mesh(es), %d points",
                    identifier, len(resource.actors), resource.number_of_points)
        return resource

    def attach(self, resource: MeshResource) -> None:
        for actor in resource.actors:
            self.renderer.AddActor(actor)

    def detach(self, resource: MeshResource) -> None:
        for actor in resource.actors:
            self.renderer.RemoveActor(actor)

    def dispose(self, resource: MeshResource) -> None:
        """Release GPU resources and pipeline inputs of resource."""
        if resource.disposed:
            return
        render_window = self.renderer.GetRenderWindow()
        for actor in resource.actors:
            if render_window is not None:
                actor.ReleaseGraphicsResources(render_window)
            mapper = actor.GetMapper()
            if mapper is not None:
                mapper.RemoveAllInputs()
        resource.actors.clear()
        resource.disposed = True
        logger.debug("Disposed resource: %s", resource.identifier)

    def apply_material(self, resource: MeshResource, params: MaterialParams) -> None:
        """Apply params to every drawable node of resource."""
        for actor in resource.actors:
            self._apply_material_to_property(actor.GetProperty(), params)

    @staticmethod
    def _apply_material_to_property(prop: vtk.vtkProperty, params: MaterialParams) -> None:
        prop.SetInterpolationToPBR()
        prop.SetColor(*params.color)
        prop.SetMetallic(params.metalness)
        prop.SetRoughness(params.roughness)
        prop.SetOpacity(params.opacity)
        # Coat and IOR were added in VTK 9.2.
        if hasattr(prop, "SetBaseIOR"):
            prop.SetBaseIOR(params.ior)
        if hasattr(prop, "SetCoatStrength"):
            prop.SetCoatStrength(params.clearcoat)
            prop.SetCoatRoughness(params.clearcoat_roughness)
            prop.SetCoatColor(*params.attenuation_color)

    # =====================================================
    # Environment
    # =====================================================

    def add_floor(self, size: float = 10.0, grid_size: float = 0.5) -> vtk.vtkActor:
        """Checkerboard floor in the XZ plane, one checker cell per grid_size."""
        if self.floor is not None:
            self.renderer.RemoveActor(self.floor)

        source = vtk_helpers.floor_plane(size, size / grid_size)
        mapper = vtk.vtkPolyDataMapper()
        mapper.SetInputConnection(source.GetOutputPort())

        actor = vtk.vtkActor()
        actor.SetMapper(mapper)
        actor.SetTexture(vtk_helpers.checkerboard_texture())
        prop = actor.GetProperty()
        prop.SetInterpolationToPBR()
        prop.SetMetallic(self.FLOOR_METALNESS)
        prop.SetRoughness(self.FLOOR_ROUGHNESS)

        self.renderer.AddActor(actor)
        self.floor = actor
        return actor

    def load_environment(self, path: Path) -> bool:
        """
        Use an equirectangular HDR image as background and light source.

        :return: False if the image couldn't be loaded (the scene stays usable).
        """
        try:
            texture = vtk_helpers.load_equirectangular_texture(path)
        except Exception as e:
            logger.warning(f"Environment map not loaded ({path}): {e}")
            return False

        self.renderer.UseImageBasedLightingOn()
        self.renderer.UseSphericalHarmonicsOn()
        self.renderer.SetEnvironmentTexture(texture, False)

        if self.skybox is not None:
            self.renderer.RemoveActor(self.skybox)
        skybox = vtk.vtkSkybox()
        skybox.SetTexture(vtk_helpers.blurred_texture(texture, self.BACKGROUND_BLURRINESS))
        skybox.SetProjectionToSphere()
        self.renderer.AddActor(skybox)
        self.skybox = skybox

        logger.info("Environment map loaded: %s", path)
        return True

    # =====================================================
    # Camera / rendering
    # =====================================================

    def set_camera_pose(self, position: Vector3, focal_point: Vector3, view_up: Vector3) -> None:
        self.camera.SetPosition(*position)
        self.camera.SetFocalPoint(*focal_point)
        self.camera.SetViewUp(*view_up)
        self.renderer.ResetCameraClippingRange()

    def render_frame(self) -> None:
        render_window = self.renderer.GetRenderWindow()
        if render_window is not None:
            render_window.Render()
