from .exceptions import PrompterError


class Prompter:
    """Reads answers from the terminal. The input function is injectable for tests."""

    def __init__(self, input_func=input):
        self.input_func = input_func

    def prompt(self, message: str):
        try:
            answer = self.input_func(f"{message}: ")
        except (EOFError, KeyboardInterrupt) as e:
            raise PrompterError(f"Could not read an answer for: {message}", cause=e)
        return (answer or "").strip()
