from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import vtk
from vtkmodules.util.numpy_support import numpy_to_vtk

logger = logging.getLogger(__name__)

MESH_SUFFIXES = (".glb", ".gltf", ".obj", ".stl", ".ply")


def read_mesh_file(path: Path) -> vtk.vtkDataObject:
    """
    Read a mesh file with the reader matching its suffix.

    glTF files produce a vtkMultiBlockDataSet, the others a vtkPolyData.
    """
    suffix = path.suffix.lower()
    if suffix in (".glb", ".gltf"):
        reader = vtk.vtkGLTFReader()
    elif suffix == ".obj":
        reader = vtk.vtkOBJReader()
    elif suffix == ".stl":
        reader = vtk.vtkSTLReader()
    elif suffix == ".ply":
        reader = vtk.vtkPLYReader()
    else:
        raise ValueError(f"Unsupported mesh format: {suffix}")
    reader.SetFileName(str(path))
    reader.Update()
    return reader.GetOutput()


def iter_polydata(data: vtk.vtkDataObject):
    """Yield every non-empty leaf of data as vtkPolyData."""
    if isinstance(data, vtk.vtkCompositeDataSet):
        it = data.NewIterator()
        it.InitTraversal()
        while not it.IsDoneWithTraversal():
            yield from iter_polydata(it.GetCurrentDataObject())
            it.GoToNextItem()
        return

    if data is None or data.GetNumberOfPoints() == 0:
        return
    if isinstance(data, vtk.vtkPolyData):
        yield data
        return

    surface = vtk.vtkGeometryFilter()
    surface.SetInputData(data)
    surface.Update()
    yield surface.GetOutput()


def with_normals(polydata: vtk.vtkPolyData) -> vtk.vtkPolyData:
    """Return a copy of polydata with point normals for smooth PBR shading."""
    normals = vtk.vtkPolyDataNormals()
    normals.SetInputData(polydata)
    normals.ComputePointNormalsOn()
    normals.SplittingOff()
    normals.Update()
    return normals.GetOutput()


def checkerboard_image(light: tuple[int, int, int] = (255, 255, 255),
                       dark: tuple[int, int, int] = (153, 153, 153)) -> vtk.vtkImageData:
    """2x2 RGB checker cell: dark on the diagonal, light elsewhere."""
    arr = np.empty((2, 2, 3), dtype=np.uint8)
    arr[:, :] = light
    arr[0, 0] = dark
    arr[1, 1] = dark

    image = vtk.vtkImageData()
    image.SetDimensions(2, 2, 1)
    vtk_arr = numpy_to_vtk(arr.reshape(-1, 3), deep=True, array_type=vtk.VTK_UNSIGNED_CHAR)
    vtk_arr.SetName("checker")
    image.GetPointData().SetScalars(vtk_arr)
    return image


def checkerboard_texture() -> vtk.vtkTexture:
    """Repeating checkerboard texture with sharp (nearest) magnification."""
    texture = vtk.vtkTexture()
    texture.SetInputData(checkerboard_image())
    texture.InterpolateOff()
    texture.MipmapOn()
    texture.RepeatOn()
    texture.SetColorModeToDirectScalars()
    return texture


def floor_plane(size: float, repeat: float) -> vtk.vtkAlgorithm:
    """Horizontal (XZ) plane of the given size with texture coordinates repeated."""
    half = size / 2.0
    plane = vtk.vtkPlaneSource()
    plane.SetOrigin(-half, 0.0, half)
    plane.SetPoint1(half, 0.0, half)
    plane.SetPoint2(-half, 0.0, -half)

    tcoords = vtk.vtkTransformTextureCoords()
    tcoords.SetInputConnection(plane.GetOutputPort())
    tcoords.SetScale(repeat, repeat, 1.0)
    return tcoords


def load_equirectangular_texture(path: Path) -> vtk.vtkTexture:
    """Load an .hdr equirectangular image as a float texture for image based lighting."""
    if not path.is_file():
        raise FileNotFoundError(path)
    reader = vtk.vtkHDRReader()
    if not reader.CanReadFile(str(path)):
        raise ValueError(f"Not a Radiance HDR file: {path}")
    reader.SetFileName(str(path))
    reader.Update()

    texture = vtk.vtkTexture()
    texture.SetColorModeToDirectScalars()
    texture.MipmapOn()
    texture.InterpolateOn()
    texture.SetInputConnection(reader.GetOutputPort())
    return texture


def blurred_texture(texture: vtk.vtkTexture, blurriness: float,
                    shrink: int = 4, max_sigma: float = 16.0) -> vtk.vtkTexture:
    """
    Downsampled, Gaussian-blurred copy of texture for use as a background.

    :param blurriness: 0 (sharp, texture is returned as is) to 1 (max_sigma pixels
        of blur at the downsampled resolution).
    """
    if blurriness <= 0.0:
        return texture

    shrinker = vtk.vtkImageShrink3D()
    shrinker.SetInputConnection(texture.GetInputConnection(0, 0))
    shrinker.SetShrinkFactors(shrink, shrink, 1)
    shrinker.AveragingOn()

    sigma = min(blurriness, 1.0) * max_sigma
    smooth = vtk.vtkImageGaussianSmooth()
    smooth.SetInputConnection(shrinker.GetOutputPort())
    smooth.SetDimensionality(2)
    smooth.SetStandardDeviations(sigma, sigma, 0.0)
    smooth.SetRadiusFactors(3.0, 3.0, 0.0)

    blurred = vtk.vtkTexture()
    blurred.SetColorModeToDirectScalars()
    blurred.MipmapOn()
    blurred.InterpolateOn()
    blurred.SetInputConnection(smooth.GetOutputPort())
    return blurred
