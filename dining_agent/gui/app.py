import threading
import tkinter as tk
from tkinter import messagebox, scrolledtext

from dining_agent.api.service import stream_chat
from dining_agent.streaming.bridge import StructuredResultBatch
from dining_agent.ui.cards import render_grid
from dining_agent.ui.chat_view import API_OPTIONS, RESTAURANT_OPTIONS, ChatViewState


SELECTED_BG = "#15803d"
IDLE_BG = "#22c55e"


class App:
    def __init__(self, root):
        self.root = root
        self.root.title("Restaurant Finder")
        self.state = ChatViewState(transport=stream_chat, alert=self.show_alert)
        self.sending = False
        self.chat = scrolledtext.ScrolledText(root, width=90, height=24)
        self.chat.pack(fill=tk.BOTH, expand=True)
        self.chat.tag_config("user", foreground="#1a73e8")
        self.chat.tag_config("assistant", foreground="#34a853")
        self.chat.tag_config("cards", foreground="#202124")
        self.chat.tag_config("error", foreground="#d93025")
        api_row = tk.Frame(root)
        api_row.pack(fill=tk.X)
        self.api_buttons = {}
        for opt in API_OPTIONS:
            btn = tk.Button(api_row, text=opt.label, bg=IDLE_BG, fg="white",
                            command=lambda v=opt.value: self.on_select_api(v))
            btn.pack(side=tk.LEFT, padx=2, pady=2)
            self.api_buttons[opt.value] = btn
        zip_row = tk.Frame(root)
        zip_row.pack(fill=tk.X)
        tk.Label(zip_row, text="Zip Code").pack(side=tk.LEFT)
        self.zip_var = tk.StringVar()
        self.zip_var.trace_add("write", lambda *_: self.state.set_zip_code(self.zip_var.get()))
        tk.Entry(zip_row, textvariable=self.zip_var).pack(side=tk.LEFT, fill=tk.X, expand=True)
        chips = tk.Frame(root)
        chips.pack(fill=tk.X)
        self.type_buttons = {}
        for opt in RESTAURANT_OPTIONS:
            btn = tk.Button(chips, text=opt.label, bg=IDLE_BG, fg="white",
                            command=lambda v=opt.value: self.on_select_type(v))
            btn.pack(side=tk.LEFT, padx=2, pady=2)
            self.type_buttons[opt.value] = btn
        self.search_btn = tk.Button(root, text="Search", command=self.on_search)
        self.search_btn.pack(fill=tk.X)
        self.status = tk.Label(root, text="Ready")
        self.status.pack(fill=tk.X)

    def show_alert(self, text):
        messagebox.showwarning("Restaurant Finder", text)

    def _highlight(self, buttons, selected):
        for value, btn in buttons.items():
            btn.config(bg=SELECTED_BG if value == selected else IDLE_BG)

    def on_select_api(self, value):
        self.state.select_api(value)
        self._highlight(self.api_buttons, value)

    def on_select_type(self, value):
        if self.sending:
            return
        self._highlight(self.type_buttons, value)
        if self.state.selected_api and self.state.zip_code:
            self._run(lambda: self.state.select_restaurant_type(value))
        else:
            self.state.select_restaurant_type(value)

    def on_search(self):
        if self.sending:
            return
        if not self.state.is_ready():
            self.state.trigger_search()
            return
        self._run(self.state.trigger_search)

    def _run(self, action):
        self.sending = True
        self.search_btn.config(state=tk.DISABLED)
        self.status.config(text="Searching...")
        query = self.state.compose_query()
        self.chat.insert(tk.END, f"{query}\n", "user")

        def worker():
            try:
                msg = action()
                self.root.after(0, lambda: self.on_response(msg, None))
            except Exception as e:
                self.root.after(0, lambda: self.on_response(None, e))
        threading.Thread(target=worker, daemon=True).start()

    def on_response(self, msg, err):
        if err or msg is None:
            self.chat.insert(tk.END, f"Error: {err}\n", "error")
            self.status.config(text="Error")
        elif msg.error:
            self.chat.insert(tk.END, f"Error: {msg.error}\n", "error")
            self.status.config(text="Error")
        else:
            if isinstance(msg.ui, StructuredResultBatch) and msg.ui.options:
                self.chat.insert(tk.END, render_grid(msg.ui.options) + "\n\n", "cards")
            self.chat.insert(tk.END, f"{msg.content}\n", "assistant")
            self.status.config(text=f"{len(self.state.messages)} messages")
        self.chat.see(tk.END)
        self.sending = False
        self.search_btn.config(state=tk.NORMAL)


def main():
    root = tk.Tk()
    App(root)
    root.mainloop()


if __name__ == "__main__":
    main()
