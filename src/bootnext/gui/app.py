from __future__ import annotations
import logging

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QLabel, QListWidget, QListWidgetItem,
    QPushButton, QMessageBox, QHBoxLayout, QTextEdit
)

from bootnext.errors import BootNextError
from bootnext.models import BootEntry
from bootnext.platforms.common import BootManager, current_platform

logger = logging.getLogger(__name__)


class BootSwitchApp(QWidget):
    def __init__(self, manager: BootManager):
        super().__init__()
        self.setWindowTitle('Next boot entry')
        self.resize(640, 420)

        self.platform = current_platform()
        self.manager = manager

        self._build_ui()
        self.refresh()

    def _build_ui(self):
        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(f'Platform: {self.platform}'))

        self.list = QListWidget()
        layout.addWidget(self.list)

        btn_row = QHBoxLayout()
        self.btn_refresh = QPushButton('Refresh')
        self.btn_apply = QPushButton('Boot into this next time')
        self.btn_reboot = QPushButton('Reboot now')
        btn_row.addWidget(self.btn_refresh)
        btn_row.addWidget(self.btn_apply)
        btn_row.addWidget(self.btn_reboot)
        layout.addLayout(btn_row)

        layout.addWidget(QLabel('Log'))
        self.log = QTextEdit()
        self.log.setReadOnly(True)
        layout.addWidget(self.log, 1)

        self.btn_refresh.clicked.connect(self.refresh)
        self.btn_apply.clicked.connect(self.apply_selection)
        self.btn_reboot.clicked.connect(self.reboot_now)

    def log_line(self, text: str):
        self.log.append(text)

    def _fail(self, title: str, exc: BootNextError):
        logger.error('%s: %s', title, exc)
        QMessageBox.critical(self, title, str(exc))
        self.log_line('Error: ' + str(exc))

    def refresh(self):
        self.list.clear()
        try:
            entries = self.manager.list_entries()
        except BootNextError as exc:
            self._fail('Unavailable', exc)
            return
        for e in entries:
            item = QListWidgetItem(f"{e.description}  [{e.id}]" + ("  (current)" if e.is_current else "") + ("  (next)" if e.is_next else ""))
            item.setData(Qt.UserRole, e)
            self.list.addItem(item)
        self.log_line(f'Detected {self.list.count()} boot entries')

    def apply_selection(self):
        item = self.list.currentItem()
        if not item:
            QMessageBox.information(self, 'Boot next', 'Select a boot entry first')
            return
        entry: BootEntry = item.data(Qt.UserRole)
        try:
            self.manager.set_boot_next(entry)
        except BootNextError as exc:
            self._fail('Failed', exc)
            return
        msg = f'Next boot entry set to: {entry.description}'
        QMessageBox.information(self, 'Done', msg)
        self.log_line(msg)
        self.refresh()

    def reboot_now(self):
        ret = QMessageBox.question(self, 'Confirm reboot', 'Reboot now? Save your work first.')
        if ret != QMessageBox.Yes:
            return
        try:
            self.manager.reboot_now()
        except BootNextError as exc:
            self._fail('Failed', exc)
