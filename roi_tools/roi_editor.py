#
# roi_editor.py: interactive ROI editor utility
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements the interactive ROI editor window and the driver for this utility.
#

import argparse
import threading
import cv2
import numpy as np
from typing import Any, Optional, Tuple, Union
from . import logger_get
from . import environment as env
from .detection_client import DetectionClient
from .exceptions import FrameNotReadyError, RoiToolsError
from .frame_surface import FrameSurface
from .image_tools import to_pil
from .roi_session import RoiEditingSession
from .status_sink import CollectingStatusSink, StatusKind
from .zone_drawing import DrawingState
from .zone_model import load_zones_json, save_zones_json, zone_color, zone_label
from .ui_support import rgb_to_hex

help_message = """
    The ROI Editor is an interactive utility to define motion detection regions of
    interest (ROIs) of a camera and to save them to the motion detection service.

    Frame source

        The frame is taken from the image file or video source given on the command line.
        If none is given, a still frame is fetched from the detection service. To fetch
        a new frame, click File > Capture Frame or press Control-F.

    Draw a region

        Press the left mouse button at one corner of the region, drag to the opposite
        corner and release the button. Confirm or cancel the region in the dialog which
        appears. Regions smaller than 10x10 frame pixels are discarded.

    Delete regions

        Select the region in the list on the right and click "Delete Region", or click
        "Clear All" to delete all regions.

    Save

        To save regions and detection parameters to the service, click File > Save ROIs
        or press Control-S. If regions are defined and detection is disabled, detection
        is enabled automatically. Saving with no regions clears the ROI configuration.

    Detection

        To enable or disable detection, click Detection > Toggle Detection or press Control-E.

    Key Shortcuts Summary

        Control-F        -  capture frame from the service
        Control-S        -  save ROIs to the service
        Control-E        -  toggle detection
        Escape           -  cancel region being drawn
    """


def _roi_editor_run(args):
    """
    Launch interactive ROI editor utility.

    Args:
        args: argparse command line arguments
    """
    client = DetectionClient(
        base_url=args.url or None, device_id=args.device or None, token=args.token or None
    )
    session = RoiEditingSession(client, args.network_id or env.get_network_id())
    RoiEditor(session, image_path=args.img_path, video_source=args.video_source)


def _roi_editor_args(parser):
    """
    Define editor subcommand arguments

    Args:
        parser: argparse parser object to be stuffed with args
    """
    parser.add_argument(
        "img_path",
        nargs="?",
        type=str,
        default="",
        help="path to image file to draw regions on; frame is fetched from the service if omitted",
    )
    parser.add_argument(
        "--video-source",
        type=str,
        default="",
        help="live video source (camera index, file path or stream URL) to draw regions on",
    )
    parser.set_defaults(func=_roi_editor_run)


class RoiEditor:
    """
    Interactive ROI editor window.
    """

    def __init__(
        self,
        session: RoiEditingSession,
        *,
        image_path: str = "",
        video_source: Union[str, int, None] = None,
        refresh_ms: int = 40,
        test_mode: bool = False,
    ):
        """
        Constructor.

        Args:
            session: camera ROI editing session
            image_path: image file to use as frame source
            video_source: live video source to use as frame source
            refresh_ms: redraw period, milliseconds
            test_mode: do not create any windows
        """
        self.session = session
        self.status = CollectingStatusSink()
        self.session.sink = self.status
        self.surface: FrameSurface = session.surface
        self.surface.set_display_size_query(self.display_size)
        self.image_path = image_path
        self.video_source = video_source
        self.refresh_ms = refresh_ms
        self.test_mode = test_mode
        self.auto_confirm = True  # confirmation answer in test mode

        # Constants
        self.line_width = 2
        self.darker_theme_color = "#89CFF0"
        self.lighter_theme_color = "lightblue"

        self.canvas_width = 0  # Current canvas size
        self.canvas_height = 0
        self.display_width = 0  # Size of the frame as displayed on canvas
        self.display_height = 0
        self.image_tk: Any = None
        self._stop = threading.Event()
        self._video_thread: Optional[threading.Thread] = None

        if not test_mode:
            tk_hint = (
                "'tkinter' is not available. Hint: install tkinter with "
                + "'sudo apt install python3-tk' (Linux) or 'brew install tcl-tk' (macOS)"
            )
            self.tk = env.import_optional_package("tkinter", custom_message=tk_hint)
            self.tkFont = env.import_optional_package("tkinter.font", custom_message=tk_hint)
            self.tkMessagebox = env.import_optional_package(
                "tkinter.messagebox", custom_message=tk_hint
            )
            self.tkFiledialog = env.import_optional_package(
                "tkinter.filedialog", custom_message=tk_hint
            )
            self.imageTk = env.import_optional_package("PIL.ImageTk", custom_message=tk_hint)
            self._build_window()

        self._load_frame_source()
        if session.network_id:
            session.submit(session.load, self._on_loaded)

        if not test_mode:
            self.root.after(self.refresh_ms, self.tick)
            self.root.mainloop()

    def _build_window(self):
        self.root = self.tk.Tk()
        self.root.title(f"ROI Editor: {self.session.network_id or 'no camera'}")
        self.root.geometry("960x600")
        self.root.protocol("WM_DELETE_WINDOW", self.on_close)

        self.font = self.tkFont.Font(family="courier 10 pitch", size=12)

        self.main_frame = self.tk.Frame(self.root, bg=self.lighter_theme_color)
        self.main_frame.pack(fill=self.tk.BOTH, expand=True)

        self.menu_bar = self.tk.Menu(self.root, bg=self.darker_theme_color)
        self.root.config(menu=self.menu_bar)

        self.file_menu = self.tk.Menu(self.menu_bar, tearoff=0)
        self.file_menu.add_command(
            label="Capture Frame", font=self.font, command=self.capture_frame, accelerator="Ctrl-F"
        )
        self.file_menu.add_command(
            label="Save ROIs", font=self.font, command=self.save, accelerator="Ctrl-S"
        )
        self.file_menu.add_separator()
        self.file_menu.add_command(
            label="Import JSON...", font=self.font, command=self.import_json
        )
        self.file_menu.add_command(
            label="Export JSON...", font=self.font, command=self.export_json
        )
        self.menu_bar.add_cascade(label="File", font=self.font, menu=self.file_menu)

        self.detection_menu = self.tk.Menu(self.menu_bar, tearoff=0)
        self.detection_menu.add_command(
            label="Toggle Detection",
            font=self.font,
            command=self.toggle_detection,
            accelerator="Ctrl-E",
        )
        self.menu_bar.add_cascade(label="Detection", font=self.font, menu=self.detection_menu)

        self.help_menu = self.tk.Menu(self.menu_bar, tearoff=0)
        self.help_menu.add_command(label="Help", font=self.font, command=self.show_help)
        self.menu_bar.add_cascade(label="Help", font=self.font, menu=self.help_menu)

        # region list panel
        self.side_frame = self.tk.Frame(self.main_frame, bg=self.lighter_theme_color)
        self.side_frame.pack(side=self.tk.RIGHT, fill=self.tk.Y, padx=5, pady=5)
        self.region_list = self.tk.Listbox(self.side_frame, font=self.font, width=14)
        self.region_list.pack(fill=self.tk.Y, expand=True)
        self.tk.Button(
            self.side_frame,
            text="Delete Region",
            font=self.font,
            bg=self.darker_theme_color,
            command=self.delete_selected,
        ).pack(fill=self.tk.X, pady=2)
        self.tk.Button(
            self.side_frame,
            text="Clear All",
            font=self.font,
            bg=self.darker_theme_color,
            command=self.clear_all,
        ).pack(fill=self.tk.X, pady=2)

        self.status_var = self.tk.StringVar(self.root, value="")
        self.status_label = self.tk.Label(
            self.main_frame,
            textvariable=self.status_var,
            font=self.font,
            anchor="w",
            bg=self.lighter_theme_color,
        )
        self.status_label.pack(side=self.tk.BOTTOM, fill=self.tk.X)

        self.canvas = self.tk.Canvas(self.main_frame, cursor="cross", bg="black")
        self.canvas.pack(fill=self.tk.BOTH, expand=True)

        # Bind mouse-controlled actions
        self.canvas.bind("<ButtonPress-1>", self.on_press)
        self.canvas.bind("<B1-Motion>", self.on_motion)
        self.canvas.bind("<ButtonRelease-1>", self.on_release)
        self.canvas.bind("<Configure>", self.on_resize)  # Bind to window resize

        # Bind keyboard shortcuts
        self.root.bind_all("<Control-f>", self.capture_frame)
        self.root.bind_all("<Control-s>", self.save)
        self.root.bind_all("<Control-e>", self.toggle_detection)
        self.root.bind_all("<Escape>", self.process_esc)

    def _load_frame_source(self):
        """Start the frame source: image file, live video, or a frame fetched from the service"""
        if self.image_path:
            img = cv2.imread(self.image_path)
            if img is None:
                self.status.error(f"Cannot read image file {self.image_path}")
            else:
                self.surface.acquire(img)
        elif self.video_source not in (None, ""):
            self._video_thread = threading.Thread(
                target=self._video_reader, name="roi-video-reader", daemon=True
            )
            self._video_thread.start()
        elif self.session.network_id:
            self.session.submit(self.session.capture_frame)

    def _video_reader(self):
        """Feed live video frames into the frame surface until the editor is closed"""
        source = self.video_source
        if isinstance(source, str) and source.isdigit():
            source = int(source)
        stream = cv2.VideoCapture(source)
        try:
            if not stream.isOpened():
                self.status.error(f"Cannot open video source {self.video_source}")
                return
            while not self._stop.is_set():
                ret, frame = stream.read()
                if not ret:
                    break
                self.surface.acquire(frame, live=True)
        finally:
            stream.release()

    def _on_loaded(self, status):
        if status is not None:
            self.status.info(
                f"Loaded {len(self.session.store)} regions; detection "
                + ("enabled" if status.enabled else "disabled")
            )

    def display_size(self) -> Tuple[float, float]:
        """Size of the frame as currently displayed on canvas"""
        return (self.display_width, self.display_height)

    def fit_display(self):
        """Fit the frame into the canvas while maintaining its aspect ratio"""
        if not self.surface.is_ready or self.canvas_width <= 0 or self.canvas_height <= 0:
            return
        dims = self.surface.native_dimensions()
        aspect_ratio = dims.width / dims.height
        new_width, new_height = self.canvas_width, self.canvas_height
        if new_width / new_height > aspect_ratio:
            new_width = int(new_height * aspect_ratio)
        else:
            new_height = int(new_width / aspect_ratio)
        self.display_width, self.display_height = max(1, new_width), max(1, new_height)

    def on_resize(self, event):
        """Record new canvas size; frame is rescaled on the next redraw"""
        self.canvas_width, self.canvas_height = event.width, event.height
        self.fit_display()

    def _inside_frame(self, event) -> bool:
        return 0 <= event.x <= self.display_width and 0 <= event.y <= self.display_height

    def on_press(self, event):
        """Starts zone drawing."""
        self.fit_display()
        if not self._inside_frame(event):
            return
        try:
            self.session.drawing.pointer_down(event.x, event.y)
        except FrameNotReadyError:
            self.status.info("Frame is not loaded yet")

    def on_motion(self, event):
        """Stretches zone being drawn."""
        x = min(max(event.x, 0), self.display_width)
        y = min(max(event.y, 0), self.display_height)
        self.session.drawing.pointer_move(x, y)

    def on_release(self, event):
        """Finishes zone drawing and asks for confirmation."""
        drawing = self.session.drawing
        x = min(max(event.x, 0), self.display_width)
        y = min(max(event.y, 0), self.display_height)
        if drawing.pointer_up(x, y) == DrawingState.PENDING_CONFIRMATION:
            if self.ask_confirmation():
                try:
                    drawing.confirm()
                except RoiToolsError as e:
                    drawing.cancel()
                    self.status.error(str(e))
            else:
                drawing.cancel()
            self.update_region_list()

    def ask_confirmation(self) -> bool:
        if self.test_mode:
            return self.auto_confirm
        return bool(
            self.tkMessagebox.askyesno(
                "Confirm Region", f"Add {zone_label(len(self.session.store))}?"
            )
        )

    def process_esc(self, event=None):
        self.session.drawing.cancel()

    def delete_selected(self, event=None):
        selection = self.region_list.curselection()
        if selection:
            self.delete_zone(selection[0])

    def delete_zone(self, index: int):
        try:
            self.session.drawing.delete_zone(index)
        except (RoiToolsError, IndexError) as e:
            self.status.error(str(e))
        self.update_region_list()

    def clear_all(self, event=None):
        try:
            self.session.drawing.clear_all()
        except RoiToolsError as e:
            self.status.error(str(e))
        self.update_region_list()

    def update_region_list(self):
        if self.test_mode:
            return
        self.region_list.delete(0, self.tk.END)
        for index in range(len(self.session.store)):
            self.region_list.insert(self.tk.END, zone_label(index))
            self.region_list.itemconfig(index, fg=rgb_to_hex(zone_color(index)))

    def save(self, event=None):
        """Saves zones to the detection service."""
        if not self.test_mode and len(self.session.store) == 0:
            if not self.tkMessagebox.askyesno(
                "Clear ROIs",
                "No regions defined. Do you want to clear existing ROI configuration?",
            ):
                return
        self.session.submit(self.session.save)

    def toggle_detection(self, event=None):
        self.session.submit(self.session.toggle_detection)

    def capture_frame(self, event=None):
        self.session.submit(self.session.capture_frame)

    def import_json(self, event=None):
        path = self.tkFiledialog.askopenfilename(filetypes=[("JSON files", "*.json")])
        if path:
            try:
                zones = load_zones_json(path)
            except (OSError, ValueError, RoiToolsError) as e:
                self.status.error(f"Cannot load {path}: {e}")
                return
            if self.session.drawing.state == DrawingState.IDLE:
                self.session.store.replace_all(zones)
                self.update_region_list()

    def export_json(self, event=None):
        path = self.tkFiledialog.asksaveasfilename(
            initialfile="rois.json",
            defaultextension=".json",
            filetypes=[("JSON files", "*.json")],
        )
        if path:
            dims = self.surface.native_dimensions() if self.surface.is_ready else None
            try:
                save_zones_json(path, self.session.store.zones, dims)
            except (OSError, ValueError) as e:
                self.status.error(f"Cannot save {path}: {e}")

    def render_frame(self) -> Optional[np.ndarray]:
        """Render zones over current frame scaled to display size"""
        frame = self.surface.current_frame()
        if frame is None:
            return None
        self.fit_display()
        frame = self.session.drawing.render(frame, line_width=self.line_width)
        if self.display_width > 0 and self.display_height > 0:
            frame = cv2.resize(
                frame, (self.display_width, self.display_height), interpolation=cv2.INTER_AREA
            )
        return frame

    def tick(self):
        """Periodic redraw; runs on the UI thread independently of network activity"""
        if self._stop.is_set():
            return

        events = self.status.pop_all()
        for event in events:
            log = logger_get().error if event.kind == StatusKind.ERROR else logger_get().info
            log(event.message)
        if events and not self.test_mode:
            self.status_var.set(events[-1].message)
            self.update_region_list()

        frame = self.render_frame()
        if frame is not None and not self.test_mode:
            self.image_tk = self.imageTk.PhotoImage(to_pil(frame))
            self.canvas.delete("frame")
            self.canvas.create_image(0, 0, anchor=self.tk.NW, image=self.image_tk, tags="frame")

        if not self.test_mode:
            self.root.after(self.refresh_ms, self.tick)

    def on_close(self):
        """End the editing session and close the window."""
        self._stop.set()
        self.session.close()
        if not self.test_mode:
            self.root.destroy()

    def show_help(self):
        help_window = self.tk.Toplevel(self.root)
        help_window.title("About ROI Editor")
        help_window.geometry("900x500")

        scrollbar = self.tk.Scrollbar(help_window)
        scrollbar.pack(side=self.tk.RIGHT, fill=self.tk.Y)

        help_text = self.tk.Text(
            help_window, wrap=self.tk.WORD, yscrollcommand=scrollbar.set, font=self.font
        )
        help_text.insert(self.tk.END, help_message)
        help_text.config(state=self.tk.DISABLED)
        help_text.pack(expand=True, fill=self.tk.BOTH)
        scrollbar.config(command=help_text.yview)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        prog=f"{__file__}",
        description="Launch interactive ROI editor utility",
    )
    parser.add_argument("--url", type=str, default="", help="detection service base URL")
    parser.add_argument("--device", type=str, default="", help="device ID")
    parser.add_argument("--token", type=str, default="", help="access token")
    parser.add_argument("--network-id", type=str, default="", help="camera network ID")
    _roi_editor_args(parser)
    _roi_editor_run(parser.parse_args())
