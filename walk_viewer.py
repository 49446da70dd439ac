# walk_viewer.py

import logging
import math
import os
import sys
from typing import Dict, List, Optional

import numpy as np
from PyQt5 import QtCore, QtGui, QtWidgets
import pyqtgraph as pg
import pyqtgraph.opengl as gl

from asset_loader import AssetLoader, AssetLoadError
from frame_scheduler import FrameScheduler
from geometry_utils import get_sky_sphere_meshdata, placement_gl_matrix, to_gl_pos, to_model_pos
from load_barrier import AssetLoadBarrier
from locomotion import LocomotionController
from pointer_lock_input import PointerLockInputController
from scene_config import SceneConfig, load_scene_config
from scene_layout import Placement
from scene_plan import (
    GROUND_ROLES,
    ROLE_GROUND_ALBEDO,
    ROLE_GROUND_AO,
    ROLE_GROUND_NORMAL,
    ROLE_SKY,
    ROLE_SPLAT,
    PlannedAsset,
    plan_scene,
)
from splat_loader import SplatCloud
from texture_utils import load_rgba, sample_equirect, shade_ground, tile_texture

logger = logging.getLogger(__name__)

LOOK_DISTANCE = 0.5
SKY_RADIUS = 300.0
FADE_MS = 500
GROUND_FALLBACK_COLOR = (96, 92, 86, 255)


class LoadingOverlay(QtWidgets.QWidget):
    """Full-window cover shown until every planned asset has resolved."""

    def __init__(self, title: str, subtitle: str, parent=None):
        super().__init__(parent)
        self.setAttribute(QtCore.Qt.WA_StyledBackground, True)
        self.setStyleSheet("background: rgba(0, 0, 0, 230);")

        layout = QtWidgets.QVBoxLayout(self)
        layout.setAlignment(QtCore.Qt.AlignCenter)
        layout.setSpacing(8)

        self.spinner = QtWidgets.QProgressBar()
        self.spinner.setRange(0, 0)
        self.spinner.setTextVisible(False)
        self.spinner.setFixedSize(160, 6)
        self.spinner.setStyleSheet(
            "QProgressBar { background: rgba(255, 255, 255, 60); border: none; border-radius: 3px; }"
            "QProgressBar::chunk { background: #ffffff; border-radius: 3px; }"
        )

        self.title_label = QtWidgets.QLabel(title)
        self.title_label.setStyleSheet(
            "background: transparent; color: #ffffff; font-size: 24px; font-weight: 600; letter-spacing: 4px;"
        )
        self.subtitle_label = QtWidgets.QLabel(subtitle)
        self.subtitle_label.setStyleSheet(
            "background: transparent; color: rgba(255, 255, 255, 180); font-size: 14px; letter-spacing: 1px;"
        )
        self.progress_label = QtWidgets.QLabel("")
        self.progress_label.setStyleSheet(
            "background: transparent; color: rgba(255, 255, 255, 120); font-size: 11px;"
        )

        for widget in (self.spinner, self.title_label, self.subtitle_label, self.progress_label):
            layout.addWidget(widget, alignment=QtCore.Qt.AlignHCenter)

        self._animation: Optional[QtCore.QPropertyAnimation] = None

    def set_progress(self, completed: int, expected: int):
        self.progress_label.setText(f"{completed} / {expected}" if expected else "")

    def fade_out(self, duration_ms: int = FADE_MS):
        if self._animation is not None:
            return
        effect = QtWidgets.QGraphicsOpacityEffect(self)
        effect.setOpacity(1.0)
        self.setGraphicsEffect(effect)
        self._animation = QtCore.QPropertyAnimation(effect, b"opacity", self)
        self._animation.setDuration(duration_ms)
        self._animation.setStartValue(1.0)
        self._animation.setEndValue(0.0)
        self._animation.finished.connect(self._on_faded)
        self._animation.start()

    def _on_faded(self):
        self.hide()
        self.deleteLater()


class WalkViewer(QtWidgets.QMainWindow):
    def __init__(self, config: Optional[SceneConfig] = None, parent=None):
        super().__init__(parent)
        self.config = config or SceneConfig()
        self.setWindowTitle(self.config.window.title)

        self.view = gl.GLViewWidget()
        self.view.setBackgroundColor((10, 10, 20))
        self.view.setFocusPolicy(QtCore.Qt.StrongFocus)
        self.view.opts["fov"] = self.config.window.fov

        # Input / player state
        self.input = PointerLockInputController(sensitivity=self.config.mouse_sensitivity)
        self.locomotion = LocomotionController(self.input.state, self.config.movement)
        self.input.on_lock_changed(self._on_lock_changed)
        self._last_mouse_pos = None
        self._mouse_captured = False
        self._recentering = False
        self._mouse_cursor_hidden = False
        self.mouse_capture_supported = self._detect_mouse_capture_support()

        # Loading
        self.barrier = AssetLoadBarrier()
        self.loader = AssetLoader(self)
        self._ground_maps: Dict[str, Optional[np.ndarray]] = {}
        self._ground_pending = set()

        # Scene items
        self.sky_item: Optional[gl.GLMeshItem] = None
        self.ground_item: Optional[gl.GLImageItem] = None
        self.splat_items: List[gl.GLScatterPlotItem] = []

        self._build_ui()

        self.view.setMouseTracking(True)
        self.view.installEventFilter(self)

        self.scheduler = FrameScheduler(self._on_frame)
        self.scheduler.start(self)

        self.barrier.on_settled(self._on_assets_settled)
        self._sync_camera()

    # ---- UI ----

    def _build_ui(self):
        window = self.config.window

        container = QtWidgets.QWidget()
        stack = QtWidgets.QStackedLayout(container)
        stack.setStackingMode(QtWidgets.QStackedLayout.StackAll)

        overlay = QtWidgets.QWidget()
        overlay.setAttribute(QtCore.Qt.WA_TransparentForMouseEvents, True)
        overlay.setStyleSheet("background: transparent;")
        overlay_layout = QtWidgets.QVBoxLayout(overlay)
        overlay_layout.setContentsMargins(16, 24, 16, 16)

        self.logo_label = QtWidgets.QLabel()
        self.logo_label.setStyleSheet("background: transparent;")
        self._load_logo(window.logo)
        overlay_layout.addWidget(self.logo_label, alignment=QtCore.Qt.AlignHCenter | QtCore.Qt.AlignTop)
        overlay_layout.addStretch()

        self.hint_label = QtWidgets.QLabel(window.hint)
        self.hint_label.setStyleSheet(
            "background: rgba(20, 24, 28, 180); color: #ffffff; padding: 8px 12px; "
            "border-radius: 8px; font-size: 12px;"
        )
        overlay_layout.addWidget(self.hint_label, alignment=QtCore.Qt.AlignHCenter | QtCore.Qt.AlignBottom)

        self.loading_overlay = LoadingOverlay(window.loading_title, window.loading_subtitle)

        # StackAll keeps every layer visible and raises the current one.
        stack.addWidget(self.view)
        stack.addWidget(overlay)
        stack.addWidget(self.loading_overlay)
        stack.setCurrentWidget(self.loading_overlay)
        self.setCentralWidget(container)

    def _load_logo(self, ref: Optional[str]):
        if not ref:
            self.logo_label.hide()
            return
        path = self.config.resolve(ref)
        try:
            data = load_rgba(path)
        except Exception as exc:
            logger.warning("Logo load error: %s (%s)", path, exc)
            self.logo_label.hide()
            return
        h, w = data.shape[:2]
        image = QtGui.QImage(data.tobytes(), w, h, 4 * w, QtGui.QImage.Format_RGBA8888).copy()
        pixmap = QtGui.QPixmap.fromImage(image).scaledToHeight(120, QtCore.Qt.SmoothTransformation)
        self.logo_label.setPixmap(pixmap)

    # ---- Asset loading ----

    def start_loading(self) -> int:
        plan = plan_scene(self.config)
        # Register everything before the first load can possibly complete.
        for _ in plan:
            self.barrier.register()
        self._ground_pending = {asset.role for asset in plan if asset.role in GROUND_ROLES}
        self._ground_maps = {}

        if not plan:
            logger.warning("Scene plan is empty; nothing to load")
            self._on_assets_settled()
            return 0

        self.loading_overlay.set_progress(0, self.barrier.expected)
        for asset in plan:
            self.loader.load(
                asset.request,
                lambda request, result, asset=asset: self._on_asset_loaded(asset, result),
                lambda request, error, asset=asset: self._on_asset_failed(asset, error),
            )
        logger.info("Loading %d assets", len(plan))
        return len(plan)

    def _on_asset_loaded(self, asset: PlannedAsset, result):
        success = True
        try:
            if asset.role == ROLE_SKY:
                self.set_background_panorama(result)
            elif asset.role in GROUND_ROLES:
                self._ground_map_resolved(asset.role, result)
            elif asset.role == ROLE_SPLAT:
                self.insert_into_scene(asset.placement, result)
            logger.info("Loaded %s: %s", asset.role, asset.request.describe())
        except Exception:
            success = False
            logger.exception("Failed to add %s to the scene", asset.request.describe())
        finally:
            self._resolve(success)

    def _on_asset_failed(self, asset: PlannedAsset, error: AssetLoadError):
        logger.warning("%s load error: %s", asset.role, error)
        try:
            if asset.role in GROUND_ROLES:
                self._ground_map_resolved(asset.role, None)
        except Exception:
            logger.exception("Failed to build the ground after %s failed", asset.request.describe())
        finally:
            self._resolve(False)

    def _resolve(self, success: bool):
        self.barrier.complete(success)
        if self.loading_overlay is not None:
            self.loading_overlay.set_progress(self.barrier.completed, self.barrier.expected)

    def _on_assets_settled(self):
        if self.barrier.failed:
            self.statusBar().showMessage(f"{self.barrier.failed} asset(s) failed to load", 5000)
        if self.loading_overlay is not None:
            self.loading_overlay.fade_out()
            self.loading_overlay = None

    # ---- Scene insertion ----

    def insert_into_scene(self, placement: Placement, cloud: SplatCloud) -> gl.GLScatterPlotItem:
        item = gl.GLScatterPlotItem(
            pos=cloud.positions,
            color=cloud.colors,
            size=cloud.sizes * placement.scale,
            pxMode=False,
        )
        item.setGLOptions("translucent")
        item.setTransform(pg.Transform3D(placement_gl_matrix(placement)))
        self.view.addItem(item)
        self.splat_items.append(item)
        return item

    def set_background_panorama(self, pano: np.ndarray):
        md = get_sky_sphere_meshdata(radius=SKY_RADIUS)
        verts = md.vertexes()
        dirs = verts / np.linalg.norm(verts, axis=1, keepdims=True)
        model_dirs = np.stack(to_model_pos(dirs.T), axis=1)
        colors = sample_equirect(pano, model_dirs)
        sky_md = gl.MeshData(vertexes=verts, faces=md.faces(), vertexColors=colors)

        if self.sky_item is not None:
            self.view.removeItem(self.sky_item)
        self.sky_item = gl.GLMeshItem(meshdata=sky_md, smooth=True, shader=None, glOptions="opaque")
        self.view.addItem(self.sky_item)
        self._sync_sky()

    def _ground_map_resolved(self, role: str, data: Optional[np.ndarray]):
        self._ground_maps[role] = data
        self._ground_pending.discard(role)
        if not self._ground_pending:
            self._build_ground()

    def _build_ground(self):
        ground = self.config.ground
        albedo = self._ground_maps.get(ROLE_GROUND_ALBEDO)
        if albedo is None:
            logger.warning("Ground albedo unavailable; using a flat ground colour")
            albedo = np.tile(np.array(GROUND_FALLBACK_COLOR, dtype=np.uint8), (2, 2, 1))

        size = ground.texture_size
        tiled = tile_texture(albedo, ground.tiles, size)
        normal = self._ground_maps.get(ROLE_GROUND_NORMAL)
        ao = self._ground_maps.get(ROLE_GROUND_AO)
        shaded = shade_ground(
            tiled,
            normal=tile_texture(normal, ground.tiles, size) if normal is not None else None,
            ao=tile_texture(ao, ground.tiles, size) if ao is not None else None,
            ao_intensity=ground.ao_intensity,
        )

        if self.ground_item is not None:
            self.view.removeItem(self.ground_item)
        # GLImageItem wants (x, y, rgba) with x along the first axis. The top image
        # row lies on the far (+y) side.
        item = gl.GLImageItem(np.ascontiguousarray(np.transpose(shaded[::-1], (1, 0, 2))))
        h, w = shaded.shape[:2]
        item.scale(ground.size / w, ground.size / h, 1.0)
        item.translate(-ground.size / 2.0, -ground.size / 2.0, 0.0)
        self.view.addItem(item)
        self.ground_item = item

    # ---- Frame loop ----

    def _on_frame(self, dt: float):
        self.locomotion.update(dt)
        self._sync_camera()

    def _sync_camera(self):
        eye = np.array(to_gl_pos(self.locomotion.camera_eye()), dtype=float)
        forward = np.array(to_gl_pos(self.locomotion.view_direction()), dtype=float)
        center = eye + forward * LOOK_DISTANCE

        # pyqtgraph places the camera at center + distance * (azimuth, elevation).
        back = -forward
        elevation = math.degrees(math.asin(max(-1.0, min(1.0, back[2]))))
        azimuth = math.degrees(math.atan2(back[1], back[0]))

        self.view.setCameraPosition(
            pos=pg.Vector(center[0], center[1], center[2]),
            distance=LOOK_DISTANCE,
            azimuth=azimuth,
            elevation=elevation,
        )
        self._sync_sky()
        self.view.update()

    def _sync_sky(self):
        if self.sky_item is None:
            return
        ex, ey, ez = to_gl_pos(self.locomotion.camera_eye())
        self.sky_item.resetTransform()
        self.sky_item.translate(ex, ey, ez)

    def reset_player(self):
        self.input.reset()
        self.locomotion.reset()
        self._sync_camera()

    # ---- Pointer lock ----

    def _detect_mouse_capture_support(self) -> bool:
        platform_name = QtGui.QGuiApplication.platformName().lower()
        if "wayland" in platform_name:
            return False
        if os.environ.get("WAYLAND_DISPLAY") or os.environ.get("XDG_SESSION_TYPE") == "wayland":
            return False
        return True

    def request_pointer_lock(self):
        if self.input.locked:
            return
        self.view.setFocus()
        if self.mouse_capture_supported:
            self.view.grabMouse()
            self._mouse_captured = True
            self._center_mouse_cursor()
        self._set_mouse_cursor_hidden(True)
        self.input.set_locked(True)

    def release_pointer_lock(self):
        if self._mouse_captured:
            self.view.releaseMouse()
            self._mouse_captured = False
        self._set_mouse_cursor_hidden(False)
        self._last_mouse_pos = None
        self.input.set_locked(False)

    def _on_lock_changed(self, locked: bool):
        self.hint_label.setVisible(not locked)
        logger.debug("Pointer lock %s", "engaged" if locked else "released")

    def _set_mouse_cursor_hidden(self, hidden: bool):
        if hidden == self._mouse_cursor_hidden:
            return
        if hidden:
            self.view.setCursor(QtGui.QCursor(QtCore.Qt.BlankCursor))
        else:
            self.view.unsetCursor()
        self._mouse_cursor_hidden = hidden

    def _center_mouse_cursor(self):
        if not self.mouse_capture_supported or not self.view.isVisible():
            return
        center = self.view.rect().center()
        self._recentering = True
        QtGui.QCursor.setPos(self.view.mapToGlobal(center))
        self._last_mouse_pos = center

    def _handle_mouse_event(self, event) -> bool:
        etype = event.type()
        if etype == QtCore.QEvent.MouseButtonPress:
            self.request_pointer_lock()
            self._last_mouse_pos = event.pos()
            return True
        if etype in (QtCore.QEvent.MouseButtonRelease, QtCore.QEvent.MouseButtonDblClick, QtCore.QEvent.Wheel):
            return True
        if etype != QtCore.QEvent.MouseMove:
            return False

        pos = event.pos()
        if self._recentering:
            self._recentering = False
            self._last_mouse_pos = pos
            return True
        if self._last_mouse_pos is None:
            self._last_mouse_pos = pos
            return True

        delta = pos - self._last_mouse_pos
        self._last_mouse_pos = pos
        if self.input.on_pointer_motion(delta.x(), delta.y()) and self._mouse_captured:
            self._center_mouse_cursor()
        return True

    def _handle_key_event(self, event, pressed: bool) -> bool:
        key = event.key()
        if pressed and not event.isAutoRepeat():
            if key == QtCore.Qt.Key_Escape and self.input.locked:
                self.release_pointer_lock()
                return True
            if key == QtCore.Qt.Key_R:
                self.reset_player()
                return True
        return self.input.on_key(key, pressed)

    def keyPressEvent(self, event):
        if self._handle_key_event(event, pressed=True):
            return
        super().keyPressEvent(event)

    def keyReleaseEvent(self, event):
        if self._handle_key_event(event, pressed=False):
            return
        super().keyReleaseEvent(event)

    def eventFilter(self, obj, event):
        if obj is self.view:
            etype = event.type()
            if etype == QtCore.QEvent.KeyPress:
                if self._handle_key_event(event, pressed=True):
                    return True
            elif etype == QtCore.QEvent.KeyRelease:
                if self._handle_key_event(event, pressed=False):
                    return True
            elif etype == QtCore.QEvent.FocusOut:
                self.release_pointer_lock()
            elif self._handle_mouse_event(event):
                return True
        return super().eventFilter(obj, event)

    def closeEvent(self, event):
        self.scheduler.stop()
        self.release_pointer_lock()
        self.loader.wait_for_done(2000)
        super().closeEvent(event)


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )
    config = load_scene_config()
    logging.getLogger().setLevel(getattr(logging, config.window.log_level, logging.INFO))
    app = QtWidgets.QApplication(sys.argv)
    viewer = WalkViewer(config)
    viewer.resize(config.window.width, config.window.height)
    viewer.show()
    viewer.start_loading()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
