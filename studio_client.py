import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import httpx

from config import load_client_settings
from utils import decode_data_uri, file_to_data_uri

logger = logging.getLogger(__name__)


GENERATE_PATH = "/api/generate"
FALLBACK_ERROR = "Failed to generate image"


class SubmitStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class FormSettings:
    prompt: str = ""
    api_key: str = ""
    edit_mode: bool = False
    source_image: str | None = None
    model: str | None = None
    aspect_ratio: str = "1:1"
    image_size: str = "1K"


@dataclass
class StudioState:
    status: SubmitStatus = SubmitStatus.IDLE
    settings: FormSettings = field(default_factory=FormSettings)
    generated_image: str | None = None
    caption: str = ""
    error: str | None = None


class RelayError(Exception):
    pass


class RelayClient:
    """Thin HTTP client for the relay's generate endpoint."""

    def __init__(
        self,
        base_url: str,
        http_client: httpx.Client | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = http_client or httpx.Client(timeout=timeout_seconds)

    def generate(self, payload: dict) -> dict:
        try:
            resp = self._http.post(f"{self.base_url}{GENERATE_PATH}", json=payload)
        except httpx.HTTPError as exc:
            raise RelayError(str(exc) or "An error occurred") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if resp.status_code >= 400:
            raise RelayError(str(data.get("error") or FALLBACK_ERROR))
        if not data.get("image"):
            raise RelayError(FALLBACK_ERROR)
        return data

    def close(self) -> None:
        self._http.close()


class StudioSession:
    """Form state for one user, changed only through the event methods below."""

    def __init__(self, relay: RelayClient, settings: FormSettings | None = None) -> None:
        self.relay = relay
        self.state = StudioState(settings=settings or FormSettings())

    @property
    def is_busy(self) -> bool:
        return self.state.status is SubmitStatus.SUBMITTING

    def set_prompt(self, prompt: str) -> None:
        self.state.settings.prompt = prompt

    def set_api_key(self, api_key: str) -> None:
        self.state.settings.api_key = api_key

    def set_model(self, model: str) -> None:
        self.state.settings.model = model.strip() or None

    def _fail(self, message: str) -> StudioState:
        self.state.status = SubmitStatus.FAILURE
        self.state.error = message
        return self.state

    def build_payload(self) -> dict:
        form = self.state.settings
        payload = {
            "prompt": form.prompt,
            "apiKey": form.api_key,
            "aspectRatio": form.aspect_ratio,
            "imageSize": form.image_size,
        }
        if form.model:
            payload["model"] = form.model
        if form.edit_mode and form.source_image:
            payload["editImage"] = form.source_image
        return payload

    def submit(self) -> StudioState:
        form = self.state.settings
        if self.is_busy:
            return self.state
        if not form.prompt.strip():
            return self._fail("Please enter a prompt")
        if not form.api_key.strip():
            return self._fail("Please enter your Gemini API key")

        self.state.status = SubmitStatus.SUBMITTING
        self.state.error = None
        try:
            data = self.relay.generate(self.build_payload())
        except RelayError as exc:
            logger.info("Generation failed: %s", exc)
            return self._fail(str(exc) or "An error occurred")
        except Exception as exc:
            logger.exception("Relay call failed")
            return self._fail(str(exc) or "An error occurred")
        except KeyboardInterrupt:
            self._fail("Generation interrupted")
            raise

        self.state.generated_image = data["image"]
        self.state.caption = str(data.get("text") or "")
        if form.edit_mode:
            form.source_image = data["image"]
        self.state.status = SubmitStatus.SUCCESS
        return self.state

    def load_image(self, path: str | Path) -> None:
        self.state.settings.source_image = file_to_data_uri(path)
        self.state.settings.edit_mode = True

    def refine_result(self) -> None:
        if not self.state.generated_image:
            raise ValueError("No generated image to refine yet.")
        form = self.state.settings
        form.source_image = self.state.generated_image
        form.edit_mode = True
        form.prompt = ""

    def reset_edit_mode(self) -> None:
        self.state.settings.edit_mode = False
        self.state.settings.source_image = None

    def toggle_edit_mode(self) -> bool:
        if self.state.settings.edit_mode:
            self.reset_edit_mode()
        else:
            self.state.settings.edit_mode = True
        return self.state.settings.edit_mode

    def save_result(self, path: str | Path) -> Path:
        if not self.state.generated_image:
            raise ValueError("No generated image to save yet.")
        _, data = decode_data_uri(self.state.generated_image)
        target = Path(path).expanduser()
        target.write_bytes(data)
        return target


HELP_TEXT = """Type a prompt to generate an image. Commands:
  /key <api-key>   set the Gemini API key
  /model [name]    choose the Gemini model (no name: server default)
  /edit            toggle edit mode (turning it off clears the source image)
  /load <path>     load a local image and switch to edit mode
  /refine          use the last result as the source image
  /reset           leave edit mode and clear the source image
  /save <path>     write the last result to a file
  /status          show the current state
  /quit            exit
"""


def _describe(session: StudioSession) -> str:
    state = session.state
    form = state.settings
    return (
        f"status={state.status.value} model={form.model or 'server default'} edit_mode={form.edit_mode} "
        f"source_image={'yes' if form.source_image else 'no'} "
        f"result={'yes' if state.generated_image else 'no'} api_key={'set' if form.api_key else 'missing'}"
    )


def _handle_command(session: StudioSession, line: str) -> bool:
    command, _, arg = line.partition(" ")
    arg = arg.strip()
    command = command.lower()

    if command in {"/quit", "/exit"}:
        return False
    if command == "/help":
        print(HELP_TEXT)
    elif command == "/key":
        session.set_api_key(arg)
        print("API key set.\n" if arg else "API key cleared.\n")
    elif command == "/model":
        session.set_model(arg)
        print(f"Model: {session.state.settings.model or 'server default'}\n")
    elif command == "/edit":
        print(f"Edit mode {'on' if session.toggle_edit_mode() else 'off'}.\n")
    elif command == "/load":
        session.load_image(arg)
        print(f"Loaded {arg}; edit mode on.\n")
    elif command == "/refine":
        session.refine_result()
        print("Last result is now the source image. Enter a transformation prompt.\n")
    elif command == "/reset":
        session.reset_edit_mode()
        print("Edit mode off.\n")
    elif command == "/save":
        target = session.save_result(arg or "gemini-creation.png")
        print(f"Saved {target}\n")
    elif command == "/status":
        print(f"{_describe(session)}\n")
    else:
        print(f"Unknown command: {command}. Type /help.\n")
    return True


def studio_loop(session: StudioSession) -> None:
    print("Gemini Image Studio")
    print("Type /help for commands, /quit to exit.\n")

    while True:
        try:
            user_input = input("Prompt: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            return

        if not user_input:
            continue
        if user_input.startswith("/"):
            try:
                if not _handle_command(session, user_input):
                    print("Goodbye!")
                    return
            except (OSError, ValueError) as exc:
                print(f"Error: {exc}\n")
            continue

        session.set_prompt(user_input)
        print("Generating...")
        state = session.submit()
        if state.status is SubmitStatus.FAILURE:
            print(f"Error: {state.error}\n")
            continue
        if state.caption:
            print(f"Gemini: {state.caption}")
        print(f"Image ready ({len(state.generated_image or '')} chars). Use /save <path> to write it.\n")


def main(argv: Optional[list[str]] = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    client_settings = load_client_settings()
    relay_url = args[0] if args else client_settings.relay_url

    relay = RelayClient(relay_url, timeout_seconds=client_settings.timeout_seconds)
    session = StudioSession(relay, FormSettings(api_key=client_settings.api_key or ""))
    try:
        studio_loop(session)
        return 0
    except Exception as exc:
        print(f"Startup error: {exc}")
        return 1
    finally:
        relay.close()


if __name__ == "__main__":
    raise SystemExit(main())
