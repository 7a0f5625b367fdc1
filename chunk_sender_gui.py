#!/usr/bin/env python3
# -----------------------------------------------------------------------------
#  Chunk Sender GUI - PyQt5 frontend for the serial chunk sender
#
#  Copyright (c) 2025 Nitish. All Rights Reserved.
# -----------------------------------------------------------------------------
"""
Run: chunk-sender-gui  (or python chunk_sender_gui.py)
Requires: PyQt5, pyserial
"""

import logging
import sys

from PyQt5 import QtCore, QtGui, QtWidgets

from chunk_config import CONFIG_FILE_NAME, SetupError, load_config
from chunk_controller import TransferAborted, TransferController
from chunk_frame import split_chunks
from chunk_link import LinkError, SerialLink, list_serial_ports
from chunk_sender import read_payload

log = logging.getLogger('chunk_sender.gui')

BAUD_RATES = ['9600', '19200', '38400', '57600', '115200', '230400']
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class QtLogHandler(logging.Handler):
    """Forwards log records to a Qt signal (safe across threads)."""

    def __init__(self, signal):
        super().__init__()
        self.signal = signal
        self.setFormatter(logging.Formatter(LOG_FORMAT, "%H:%M:%S"))

    def emit(self, record):
        try:
            self.signal.emit(self.format(record))
        except RuntimeError:
            # receiver widget already deleted
            pass


# Worker wrapper to run the transfer without blocking the UI
class TransferWorker(QtCore.QObject):
    finished = QtCore.pyqtSignal(bool)
    log = QtCore.pyqtSignal(str)
    progress = QtCore.pyqtSignal(int, int)  # acked chunks, total chunks

    def __init__(self, port, filepath, baudrate=None, config_path=CONFIG_FILE_NAME):
        super().__init__()
        self.port = port
        self.filepath = filepath
        self.baudrate = baudrate
        self.config_path = config_path
        self._link = None
        self._stopped = False

    def _on_progress(self, acked, total):
        self.progress.emit(acked, total)

    def run(self):
        handler = QtLogHandler(self.log)
        root = logging.getLogger()
        root.addHandler(handler)
        old_level = root.level
        if old_level > logging.INFO or old_level == logging.NOTSET:
            root.setLevel(logging.INFO)
        ok = False
        try:
            payload = read_payload(self.filepath)
            chunks = split_chunks(payload)
            log.info("[WORKER] %s: %d bytes -> %d chunks", self.filepath, len(payload), len(chunks))
            config = load_config(self.config_path).with_overrides(tty=self.port, baudrate=self.baudrate)
            self._link = SerialLink.open(config.tty, config)
            if not self._stopped:
                self._link.settle(config.start_delay)
            if self._stopped:
                raise TransferAborted("Stopped before sending")
            controller = TransferController(self._link, chunks, chunk_delay=config.chunk_delay,
                                            on_progress=self._on_progress)
            controller.run()
            ok = True
        except SetupError as e:
            log.error("[ERR] %s", e)
        except (TransferAborted, LinkError) as e:
            log.error("[ERR] Transfer aborted: %s", e)
        except Exception as e:
            log.exception("[ERR] Worker exception: %s", e)
        finally:
            if self._link:
                self._link.close()
            root.removeHandler(handler)
            root.setLevel(old_level)
            self.finished.emit(ok)

    def stop(self):
        self._stopped = True
        if self._link:
            self._link.stop()


# ---------- GUI ----------
class MainWindow(QtWidgets.QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Chunk Sender - GUI")
        self.setMinimumSize(760, 480)
        self._worker_thread = None
        self._worker = None

        w = QtWidgets.QWidget()
        self.setCentralWidget(w)
        layout = QtWidgets.QVBoxLayout(w)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(12)

        # Port, baud, refresh
        top_h = QtWidgets.QHBoxLayout()
        layout.addLayout(top_h)

        self.port_combo = QtWidgets.QComboBox()
        self.port_combo.setEditable(True)
        self.refresh_ports()
        refresh_btn = QtWidgets.QPushButton("Refresh")
        refresh_btn.clicked.connect(self.refresh_ports)

        self.baud_combo = QtWidgets.QComboBox()
        self.baud_combo.setEditable(True)
        self.baud_combo.addItems(BAUD_RATES)
        self.baud_combo.setCurrentText('115200')

        top_h.addWidget(QtWidgets.QLabel("Port:"))
        top_h.addWidget(self.port_combo, 1)
        top_h.addWidget(refresh_btn)
        top_h.addWidget(QtWidgets.QLabel("Baud:"))
        top_h.addWidget(self.baud_combo)

        # File
        file_h = QtWidgets.QHBoxLayout()
        layout.addLayout(file_h)
        self.file_edit = QtWidgets.QLineEdit()
        self.file_edit.setPlaceholderText("File to send")
        btn_select_file = QtWidgets.QPushButton("Select File")
        btn_select_file.clicked.connect(self.select_file)
        file_h.addWidget(QtWidgets.QLabel("File:"))
        file_h.addWidget(self.file_edit, 1)
        file_h.addWidget(btn_select_file)

        # Buttons
        btn_h = QtWidgets.QHBoxLayout()
        layout.addLayout(btn_h)
        self.start_btn = QtWidgets.QPushButton("Send")
        self.stop_btn = QtWidgets.QPushButton("Stop")
        self.stop_btn.setEnabled(False)
        self.start_btn.clicked.connect(self.on_start)
        self.stop_btn.clicked.connect(self.on_stop)
        btn_h.addWidget(self.start_btn)
        btn_h.addWidget(self.stop_btn)

        # Progress
        self.progress_bar = QtWidgets.QProgressBar()
        self.progress_bar.setRange(0, 1)
        self.progress_bar.setValue(0)
        self.progress_label = QtWidgets.QLabel("0/0 chunks")
        layout.addWidget(self.progress_bar)
        layout.addWidget(self.progress_label)

        # Log area
        self.log_view = QtWidgets.QPlainTextEdit()
        self.log_view.setReadOnly(True)
        self.log_view.setFont(QtGui.QFont("Consolas", 10))
        layout.addWidget(self.log_view, 1)

        footer = QtWidgets.QLabel("Note: the peer must answer every chunk with 'k' or 'f'. "
                                  "Stop aborts a stalled transfer.")
        footer.setStyleSheet("color: gray; font-size: 11px;")
        layout.addWidget(footer)

        QtWidgets.QShortcut(QtGui.QKeySequence("Ctrl+R"), self, activated=self.refresh_ports)

    def refresh_ports(self):
        ports = list_serial_ports()
        self.port_combo.clear()
        if ports:
            self.port_combo.addItems(ports)
        else:
            self.port_combo.addItem("/dev/ttyACM0")  # hint

    def select_file(self):
        path, _ = QtWidgets.QFileDialog.getOpenFileName(self, "Select file to send")
        if path:
            self.file_edit.setText(path)

    def append_log(self, text):
        self.log_view.appendPlainText(text)
        cursor = self.log_view.textCursor()
        cursor.movePosition(QtGui.QTextCursor.End)
        self.log_view.setTextCursor(cursor)

    def update_progress(self, acked, total):
        self.progress_bar.setRange(0, max(total, 1))
        self.progress_bar.setValue(acked)
        self.progress_label.setText(f"{acked}/{total} chunks")

    def on_start(self):
        port = self.port_combo.currentText().strip()
        if not port:
            self.append_log("[ERR] Select serial port first")
            return
        path = self.file_edit.text().strip()
        if not path:
            self.append_log("[ERR] Select a file first")
            return
        baud_text = self.baud_combo.currentText().strip()
        if not baud_text.isdigit():
            self.append_log(f"[ERR] Invalid baud rate: {baud_text}")
            return

        self.start_btn.setEnabled(False)
        self.stop_btn.setEnabled(True)
        self.update_progress(0, 0)
        self.append_log(f"[UI] Sending {path} via {port} @ {baud_text}")

        self._worker = TransferWorker(port, path, baudrate=int(baud_text))
        self._worker.log.connect(self.append_log)
        self._worker.progress.connect(self.update_progress)
        self._worker.finished.connect(self.on_worker_finished)

        self._worker_thread = QtCore.QThread()
        self._worker.moveToThread(self._worker_thread)
        self._worker_thread.started.connect(self._worker.run)
        self._worker_thread.start()

    def on_stop(self):
        self.append_log("[UI] Stopping...")
        self.stop_btn.setEnabled(False)
        if self._worker:
            self._worker.stop()

    def on_worker_finished(self, ok):
        self.append_log("[WORKER] Done." if ok else "[WORKER] Failed.")
        self.start_btn.setEnabled(True)
        self.stop_btn.setEnabled(False)
        if self._worker_thread:
            self._worker_thread.quit()
            self._worker_thread.wait(500)
        self._worker = None
        self._worker_thread = None


def main():
    app = QtWidgets.QApplication(sys.argv)
    app.setStyle("Fusion")
    win = MainWindow()
    win.show()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
