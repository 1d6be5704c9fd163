import getpass
from dataclasses import dataclass


@dataclass
class Choice:
    label: str
    value: str


class Prompter:
    """Reads operator input from the terminal.

    All interactive reads (menus, action parameters, login codes) go through
    one instance of this class, so a scripted replacement can drive the whole
    console.
    """

    def text(self, message, default=None):
        suffix = f" [{default}]" if default else ""
        answer = input(f"{message}{suffix} ").strip()
        if not answer and default is not None:
            return default
        return answer

    def secret(self, message):
        return getpass.getpass(f"{message} ")

    def confirm(self, message, default=False):
        hint = "Y/n" if default else "y/N"
        while True:
            answer = input(f"{message} ({hint}) ").strip().lower()
            if not answer:
                return default
            if answer in ('y', 'yes'):
                return True
            if answer in ('n', 'no'):
                return False
            print("Please answer y or n.")

    def select(self, message, choices):
        """Show numbered choices and return the value of the selected one"""
        print(message)
        for idx, choice in enumerate(choices):
            print(f"  [{idx+1}] {choice.label}")
        while True:
            sel = input("\nSelect an option by number: ").strip()
            if sel.isdigit():
                idx = int(sel) - 1
                if 0 <= idx < len(choices):
                    return choices[idx].value
            print("Invalid selection. Please try again.")

    def pause(self, message="Press Enter to continue..."):
        input(message)
