"""Side panel: material parameters and model selection."""
from __future__ import annotations

import logging

from PySide6 import QtCore
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (QColorDialog, QComboBox, QDoubleSpinBox, QFormLayout,
                               QGroupBox, QPushButton, QVBoxLayout, QWidget)

from mview.core.material import (IRIDESCENCE_THICKNESS_RANGE, PARAM_RANGES, MaterialParams,
                                 MaterialState, color_from_hex, color_to_hex)
from mview.core.model_catalog import ModelCatalog

logger = logging.getLogger(__name__)

# (parameter, label, tooltip, step)
MATERIAL_CONTROLS = [
    ("roughness", "表面粗糙度", "控制钻石表面的光滑程度，值越小越光滑。", 0.01),
    ("metalness", "表面金属度", "控制材质的金属性，对于钻石通常保持较低值。", 0.01),
    ("transmission", "透射度", "控制光线穿透材质的能力，1表示完全透射。", 0.01),
    ("ior", "折射率", "", 0.01),
    ("iridescence", "虹彩强度", "材质表面的虹彩效应强度。", 0.1),
    ("iridescence_ior", "虹彩色移强度", "", 0.01),
    ("clearcoat", "清漆", "", 0.01),
    ("clearcoat_roughness", "清漆粗糙度", "", 0.01),
]


class MaterialPanel(QWidget):
    """Edits a MaterialState and emits modelSelected(identifier) for the model combo box."""

    modelSelected = QtCore.Signal(str)

    def __init__(self, material: MaterialState, catalog: ModelCatalog,
                 parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.material = material
        self.catalog = catalog
        self._spin_boxes: dict[str, QDoubleSpinBox] = {}
        self._updating = False

        layout = QVBoxLayout(self)
        layout.addWidget(self._build_material_group())
        layout.addWidget(self._build_model_group())
        layout.addStretch(1)

        self.material.add_changed_callback(self._sync_from_material)
        self._sync_from_material(self.material.params)

    def _build_material_group(self) -> QGroupBox:
        group = QGroupBox("Diamond Material", self)
        form = QFormLayout(group)

        self.color_button = QPushButton(group)
        self.color_button.clicked.connect(self._choose_color)
        form.addRow("宝石色", self.color_button)

        for name, label, tooltip, step in MATERIAL_CONTROLS:
            lo, hi = PARAM_RANGES[name]
            spin = self._make_spin_box(lo, hi, step, tooltip)
            spin.valueChanged.connect(lambda v, n=name: self._on_value_changed(n, v))
            form.addRow(label, spin)
            self._spin_boxes[name] = spin

        lo, hi = IRIDESCENCE_THICKNESS_RANGE
        self.thickness_spin = self._make_spin_box(lo, hi, 10.0,
                                                  "控制虹彩薄膜的厚度，影响虹彩的颜色变化。")
        self.thickness_spin.valueChanged.connect(self._on_thickness_changed)
        form.addRow("虹彩偏移", self.thickness_spin)

        reset = QPushButton("Reset", group)
        reset.clicked.connect(self.material.reset)
        form.addRow(reset)
        return group

    def _build_model_group(self) -> QGroupBox:
        group = QGroupBox("选择模型", self)
        form = QFormLayout(group)
        self.model_combo = QComboBox(group)
        for label, identifier in self.catalog.items():
            self.model_combo.addItem(label, identifier)
        self.model_combo.setCurrentText(self.catalog.default_label)
        self.model_combo.currentIndexChanged.connect(self._on_model_index_changed)
        form.addRow("Select Model", self.model_combo)
        return group

    def _make_spin_box(self, lo: float, hi: float, step: float, tooltip: str) -> QDoubleSpinBox:
        spin = QDoubleSpinBox(self)
        spin.setRange(lo, hi)
        spin.setSingleStep(step)
        spin.setDecimals(2)
        spin.setKeyboardTracking(False)
        if tooltip:
            spin.setToolTip(tooltip)
        return spin

    def set_current_model(self, identifier: str) -> None:
        """Show identifier in the combo box without emitting modelSelected.

        Models outside the catalog (e.g. opened from a file) clear the selection.
        """
        self.model_combo.blockSignals(True)
        try:
            self.model_combo.setCurrentIndex(self.model_combo.findData(identifier))
        finally:
            self.model_combo.blockSignals(False)

    def select_next_model(self) -> None:
        count = self.model_combo.count()
        if count:
            self.model_combo.setCurrentIndex((self.model_combo.currentIndex() + 1) % count)

    # =====================================================
    # Slots
    # =====================================================

    def _on_value_changed(self, name: str, value: float) -> None:
        if not self._updating:
            self.material.update(**{name: value})

    def _on_thickness_changed(self, value: float) -> None:
        if not self._updating:
            lo = min(self.material.params.iridescence_thickness_range[0], value)
            self.material.update(iridescence_thickness_range=(lo, value))

    def _choose_color(self) -> None:
        color = QColorDialog.getColor(QColor(color_to_hex(self.material.params.color)),
                                      self, "宝石色")
        if color.isValid():
            self.material.update(color=color_from_hex(color.name()))

    def _on_model_index_changed(self, index: int) -> None:
        identifier = self.model_combo.itemData(index)
        if identifier:
            logger.info("Model selected: %s", identifier)
            self.modelSelected.emit(identifier)

    def _sync_from_material(self, params: MaterialParams) -> None:
        self._updating = True
        try:
            for name, spin in self._spin_boxes.items():
                spin.setValue(getattr(params, name))
            self.thickness_spin.setValue(params.iridescence_thickness_range[1])
            self.color_button.setText(color_to_hex(params.color))
            self.color_button.setStyleSheet(f"background-color: {color_to_hex(params.color)}")
        finally:
            self._updating = False
