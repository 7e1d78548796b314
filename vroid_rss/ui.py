"""
Tkinter user interface.

One main window with the feed selector, executable path, save and
play buttons and a log area, plus the modal "add feed" dialog.
"""

import concurrent.futures
import logging
import queue
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, ttk
from typing import Any

from vroid_rss.app_state import AppState, PlaybackInProgressError
from vroid_rss.config import ConfigIOError
from vroid_rss.rss_parser import FetchError

logger = logging.getLogger(__name__)

APP_TITLE = "VoiroRSS"
EXECUTABLE_NAME = "vrx.exe"

# Interval for draining messages from the background loop
POLL_INTERVAL_MS = 60


class AddFeedDialog(tk.Toplevel):
    """
    Modal dialog collecting a feed name and URL.

    ``result`` holds the new entry's index after OK, and stays None
    when the dialog is cancelled.
    """

    def __init__(self, parent: tk.Misc, app_state: AppState):
        super().__init__(parent)
        self.app_state = app_state
        self.result: int | None = None

        self.title("RSSの追加")
        self.minsize(300, 100)
        self.transient(parent)
        self.resizable(True, False)

        self.name_var = tk.StringVar()
        self.url_var = tk.StringVar()
        self.error_var = tk.StringVar()

        form = ttk.Frame(self, padding=8)
        form.pack(fill="both", expand=True)
        form.columnconfigure(1, weight=1)

        ttk.Label(form, text="Title:").grid(row=0, column=0, sticky="w", pady=2)
        name_entry = ttk.Entry(form, textvariable=self.name_var)
        name_entry.grid(row=0, column=1, sticky="ew", pady=2)
        ttk.Label(form, text="URL:").grid(row=1, column=0, sticky="w", pady=2)
        ttk.Entry(form, textvariable=self.url_var).grid(
            row=1, column=1, sticky="ew", pady=2
        )
        ttk.Label(form, textvariable=self.error_var, foreground="red").grid(
            row=2, column=0, columnspan=2, sticky="w"
        )

        buttons = ttk.Frame(self, padding=(8, 0, 8, 8))
        buttons.pack(fill="x")
        ttk.Button(buttons, text="Cancel", command=self._on_cancel).pack(side="right")
        ttk.Button(buttons, text="OK", command=self._on_ok).pack(side="right", padx=4)

        self.bind("<Return>", lambda _event: self._on_ok())
        self.bind("<Escape>", lambda _event: self._on_cancel())
        self.protocol("WM_DELETE_WINDOW", self._on_cancel)

        name_entry.focus_set()

    def show(self) -> int | None:
        """Make the dialog modal and return the new index once it closes."""
        self.wait_visibility()
        self.grab_set()
        self.wait_window(self)
        return self.result

    def _on_ok(self) -> None:
        try:
            self.result = self.app_state.add_feed(
                self.name_var.get(), self.url_var.get()
            )
        except ValueError as e:
            logger.debug("Rejected feed input: %s", e)
            self.error_var.set(str(e))
            return
        self.destroy()

    def _on_cancel(self) -> None:
        self.result = None
        self.destroy()


class MainWindow(tk.Tk):
    """
    The application's top-level window.

    All widget handles live on the instance; the only shared state is the
    AppState passed in.
    """

    def __init__(self, app_state: AppState):
        super().__init__()
        self.app_state = app_state
        self.exit_code = 0
        self._q: "queue.Queue[tuple[str, Any]]" = queue.Queue()
        self._controls: list[ttk.Widget] = []

        self.title(APP_TITLE)
        self.minsize(500, 75)
        self._build_ui()
        self.protocol("WM_DELETE_WINDOW", self.destroy)

    def _build_ui(self) -> None:
        root = ttk.Frame(self, padding=8)
        root.pack(fill="both", expand=True)
        root.columnconfigure(1, weight=1)
        root.rowconfigure(4, weight=1)

        ttk.Label(root, text="RSS の URL").grid(row=0, column=0, sticky="w")
        self.feed_combo = ttk.Combobox(root, state="readonly")
        self.feed_combo.grid(row=0, column=1, sticky="ew", padx=4, pady=2)
        add_button = ttk.Button(root, text="追加", command=self.on_add_feed)
        add_button.grid(row=0, column=2, sticky="ew")
        self._refresh_feeds(0)

        ttk.Label(root, text="vrx.exe のパス").grid(row=1, column=0, sticky="w")
        self.path_var = tk.StringVar(value=self.app_state.executable_path)
        path_entry = ttk.Entry(root, textvariable=self.path_var)
        path_entry.grid(row=1, column=1, sticky="ew", padx=4, pady=2)
        open_button = ttk.Button(root, text="開く", command=self.on_open_executable)
        open_button.grid(row=1, column=2, sticky="ew")

        save_button = ttk.Button(root, text="保存", command=self.on_save)
        save_button.grid(row=2, column=0, columnspan=3, sticky="ew", pady=2)
        play_button = ttk.Button(root, text="取得・再生", command=self.on_play)
        play_button.grid(row=3, column=0, columnspan=3, sticky="ew", pady=2)

        log_frame = ttk.Frame(root)
        log_frame.grid(row=4, column=0, columnspan=3, sticky="nsew", pady=(4, 0))
        self.log_text = tk.Text(log_frame, height=12, wrap="word", state="disabled")
        scroll = ttk.Scrollbar(log_frame, orient="vertical", command=self.log_text.yview)
        self.log_text.configure(yscrollcommand=scroll.set)
        self.log_text.pack(side="left", fill="both", expand=True)
        scroll.pack(side="right", fill="y")

        self._controls = [
            self.feed_combo,
            add_button,
            path_entry,
            open_button,
            save_button,
            play_button,
        ]

    def _refresh_feeds(self, index: int) -> None:
        names = self.app_state.feed_names()
        self.feed_combo.configure(values=names)
        if names:
            self.feed_combo.current(index)

    def _set_enabled(self, enabled: bool) -> None:
        for widget in self._controls:
            if widget is self.feed_combo:
                widget.configure(state="readonly" if enabled else "disabled")
            else:
                widget.configure(state="normal" if enabled else "disabled")

    def append_log(self, line: str) -> None:
        """Append one line at the end of the log area."""
        self.log_text.configure(state="normal")
        self.log_text.insert("end", line + "\n")
        self.log_text.configure(state="disabled")
        self.log_text.see("end")

    def fatal(self, error: BaseException) -> None:
        """Report an unrecoverable error and close the application."""
        logger.critical("%s", error)
        self.append_log(str(error))
        self.exit_code = 1
        self.destroy()

    # -- event handlers -------------------------------------------------

    def on_add_feed(self) -> None:
        """Open the add-feed dialog and select the feed it adds."""
        index = AddFeedDialog(self, self.app_state).show()
        if index is not None:
            self._refresh_feeds(index)

    def on_open_executable(self) -> None:
        """Let the user pick the executable; cancelling keeps the current path."""
        path = filedialog.askopenfilename(
            parent=self,
            title=f"Select {EXECUTABLE_NAME}",
            initialdir=_initial_dir(self.path_var.get()),
            initialfile=EXECUTABLE_NAME,
            filetypes=[(EXECUTABLE_NAME, EXECUTABLE_NAME)],
        )
        if path:
            self.path_var.set(path)

    def on_save(self) -> None:
        """Persist the path field and the feed list. A write failure is fatal."""
        try:
            self.app_state.save(self.path_var.get())
        except ConfigIOError as e:
            self.fatal(e)

    def on_play(self) -> None:
        """
        Start a play cycle for the selected feed.

        Controls stay disabled until the cycle finishes; log lines arrive
        through the queue drained by ``_poll_queue``.
        """
        try:
            future = self.app_state.start_play(
                self.feed_combo.get(),
                self.path_var.get(),
                lambda line: self._q.put(("log", line)),
            )
        except PlaybackInProgressError as e:
            logger.warning("%s", e)
            return

        self._set_enabled(False)
        future.add_done_callback(lambda f: self._q.put(("done", f)))
        self.after(POLL_INTERVAL_MS, self._poll_queue)

    def _poll_queue(self) -> None:
        while True:
            try:
                kind, payload = self._q.get_nowait()
            except queue.Empty:
                self.after(POLL_INTERVAL_MS, self._poll_queue)
                return

            if kind == "log":
                self.append_log(payload)
            elif kind == "done":
                self._on_play_done(payload)
                return

    def _on_play_done(self, future: concurrent.futures.Future) -> None:
        error = self.app_state.finish_play(future)
        self._set_enabled(True)
        if isinstance(error, FetchError):
            self.fatal(error)
        elif error is not None:
            logger.error("Play cycle failed: %s", error)
            self.append_log(f"error: {error}")


def _initial_dir(current: str) -> str | None:
    """Directory the file picker should open in for the current path."""
    if not current:
        return None
    path = Path(current)
    if path.is_dir():
        return str(path)
    if path.parent.is_dir():
        return str(path.parent)
    return None
