"""Desktop entry point: pending approvals of one user."""
from __future__ import annotations

import argparse
import logging
import tkinter as tk
from tkinter import X

from approvals.bootstrap import build_approvals
from approvals.gui.pending_view import PendingView
from core.models.user import Actor


class MainWindow(tk.Tk):
    def __init__(self, actor: Actor) -> None:
        super().__init__()
        self.title("Approvals")
        self.geometry("900x560")

        self.ctx = build_approvals(current_user_provider=lambda: actor)
        expired = self.ctx.timeouts.enforce()

        self.view = PendingView(self, self.ctx)
        self.view.pack(fill="both", expand=True)

        self.status_bar = tk.Label(self, anchor="w", bg="#eeeeee",
                                   text=f"Signed in as {actor.display_name}")
        self.status_bar.pack(side="bottom", fill=X)
        if expired:
            self.set_status(f"{len(expired)} document(s) auto-rejected after {self.ctx.config.timeout_days} days")

        self.protocol("WM_DELETE_WINDOW", self._on_close)

    def set_status(self, message: str) -> None:
        self.status_bar.config(text=message)

    def _on_close(self) -> None:
        self.ctx.close()
        self.destroy()


def main() -> None:
    parser = argparse.ArgumentParser(description="Review and sign pending documents.")
    parser.add_argument("--user", required=True, help="id of the signing user")
    parser.add_argument("--name", help="display name used on signature labels")
    parser.add_argument("--position", default="", help="office held, e.g. Dean")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = MainWindow(Actor(id=args.user, full_name=args.name, position=args.position))
    app.mainloop()


if __name__ == "__main__":
    main()
