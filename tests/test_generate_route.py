"""Tests for the /api/generate relay route"""
import base64
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from google.genai import types

from app import create_app
from config import Settings

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")
PRO_MODEL = "gemini-3-pro-image-preview"


def make_response(parts=None, with_candidate=True):
    if not with_candidate:
        return types.GenerateContentResponse(candidates=[])
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=parts or []))]
    )


def image_part(data=PNG_BYTES):
    return types.Part(inline_data=types.Blob(data=data, mime_type="image/png"))


class GenerateRouteTestCase(unittest.TestCase):
    default_key = None

    def setUp(self):
        self.app = create_app(Settings(gemini_api_key=self.default_key))
        self.client = TestClient(self.app)
        patcher = patch("gemini_image.genai.Client")
        self.mock_client_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.generate_content = self.mock_client_cls.return_value.models.generate_content

    def post(self, **body):
        return self.client.post("/api/generate", json=body)


class TestGenerateValidation(GenerateRouteTestCase):
    def test_missing_prompt_is_rejected(self):
        resp = self.post(apiKey="user-key")

        self.assertEqual(resp.status_code, 400)
        self.assertIn("Prompt", resp.json()["error"])
        self.mock_client_cls.assert_not_called()

    def test_whitespace_prompt_is_rejected(self):
        for prompt in ["", "   ", "\n\t"]:
            resp = self.post(prompt=prompt, apiKey="user-key")
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json(), {"error": "Prompt required"})
        self.mock_client_cls.assert_not_called()

    def test_missing_credential_is_rejected(self):
        resp = self.post(prompt="a red fox")

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "API key required"})
        self.mock_client_cls.assert_not_called()

    def test_blank_credential_is_rejected(self):
        resp = self.post(prompt="a red fox", apiKey="   ")

        self.assertEqual(resp.status_code, 400)
        self.mock_client_cls.assert_not_called()

    def test_invalid_edit_image_is_rejected(self):
        resp = self.post(prompt="make it blue", apiKey="user-key", editImage="not-a-data-uri")

        self.assertEqual(resp.status_code, 400)
        self.assertIn("editImage", resp.json()["error"])
        self.mock_client_cls.assert_not_called()

    def test_wrong_field_type_returns_error_payload(self):
        resp = self.post(prompt=["not", "a", "string"], apiKey="user-key")

        self.assertEqual(resp.status_code, 400)
        self.assertIn("error", resp.json())

    def test_non_json_body_returns_error_payload(self):
        resp = self.client.post(
            "/api/generate",
            content="prompt=fox",
            headers={"Content-Type": "application/json"},
        )

        self.assertEqual(resp.status_code, 400)
        self.assertIn("error", resp.json())


class TestGenerateWithDefaultKey(GenerateRouteTestCase):
    default_key = "server-key"

    def test_default_credential_is_used_when_request_omits_it(self):
        self.generate_content.return_value = make_response([image_part()])

        resp = self.post(prompt="a red fox")

        self.assertEqual(resp.status_code, 200)
        self.mock_client_cls.assert_called_once_with(api_key="server-key")

    def test_explicit_credential_wins(self):
        self.generate_content.return_value = make_response([image_part()])

        resp = self.post(prompt="a red fox", apiKey="user-key")

        self.assertEqual(resp.status_code, 200)
        self.mock_client_cls.assert_called_once_with(api_key="user-key")

    def test_blank_explicit_credential_falls_back_to_default(self):
        self.generate_content.return_value = make_response([image_part()])

        resp = self.post(prompt="a red fox", apiKey="   ")

        self.assertEqual(resp.status_code, 200)
        self.mock_client_cls.assert_called_once_with(api_key="server-key")


class TestGenerateResponses(GenerateRouteTestCase):
    def test_success_returns_image_and_caption(self):
        self.generate_content.return_value = make_response(
            [types.Part(text="Here is your fox."), image_part()]
        )

        resp = self.post(prompt="a red fox", apiKey="user-key")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            {"image": f"data:image/png;base64,{PNG_B64}", "text": "Here is your fox."},
        )

    def test_success_without_caption_returns_empty_text(self):
        self.generate_content.return_value = make_response([image_part()])

        resp = self.post(prompt="a red fox", apiKey="user-key")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["text"], "")

    def test_zero_candidates(self):
        self.generate_content.return_value = make_response(with_candidate=False)

        resp = self.post(prompt="a red fox", apiKey="user-key")

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "No image generated"})

    def test_no_image_part(self):
        self.generate_content.return_value = make_response([types.Part(text="I can't draw that.")])

        resp = self.post(prompt="a red fox", apiKey="user-key")

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "No image in response"})

    def test_upstream_exception_message_is_passed_through(self):
        self.generate_content.side_effect = RuntimeError("quota exceeded")

        with self.assertLogs("gemini_image", level="ERROR"):
            resp = self.post(prompt="a red fox", apiKey="user-key")

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "quota exceeded"})

    def test_upstream_exception_without_message_uses_fallback(self):
        self.generate_content.side_effect = RuntimeError()

        resp = self.post(prompt="a red fox", apiKey="user-key")

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Failed to generate image"})

    def test_request_is_forwarded_as_single_user_content(self):
        self.generate_content.return_value = make_response([image_part()])

        self.post(prompt="a red fox", apiKey="user-key")

        kwargs = self.generate_content.call_args.kwargs
        self.assertEqual(kwargs["model"], "gemini-2.0-flash-exp")
        contents = kwargs["contents"]
        self.assertEqual(len(contents), 1)
        self.assertEqual(contents[0].role, "user")
        self.assertEqual([part.text for part in contents[0].parts], ["a red fox"])
        self.assertEqual(kwargs["config"].response_modalities, ["TEXT", "IMAGE"])
        self.assertIsNone(kwargs["config"].image_config)

    def test_image_config_only_for_pro_model(self):
        self.generate_content.return_value = make_response([image_part()])

        self.post(prompt="a red fox", apiKey="user-key", model=PRO_MODEL, aspectRatio="16:9", imageSize="2K")

        config = self.generate_content.call_args.kwargs["config"]
        self.assertEqual(config.image_config.aspect_ratio, "16:9")
        self.assertEqual(config.image_config.image_size, "2K")

    def test_generated_image_can_be_sent_back_for_editing(self):
        self.generate_content.return_value = make_response([image_part()])
        first = self.post(prompt="a red fox", apiKey="user-key").json()

        edited_bytes = b"edited-image-bytes"
        self.generate_content.return_value = make_response([image_part(edited_bytes)])
        second = self.post(prompt="make it blue", apiKey="user-key", editImage=first["image"])

        self.assertEqual(second.status_code, 200)
        self.assertEqual(
            second.json()["image"],
            "data:image/png;base64," + base64.b64encode(edited_bytes).decode("ascii"),
        )
        parts = self.generate_content.call_args.kwargs["contents"][0].parts
        self.assertEqual(parts[0].text, "make it blue")
        self.assertEqual(parts[1].inline_data.mime_type, "image/png")
        forwarded_b64 = base64.b64encode(parts[1].inline_data.data).decode("ascii")
        self.assertEqual(forwarded_b64, first["image"].split(",", 1)[1])

    def test_edit_image_keeps_declared_mime_type(self):
        self.generate_content.return_value = make_response([image_part()])
        jpeg_uri = "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode("ascii")

        self.post(prompt="make it blue", apiKey="user-key", editImage=jpeg_uri)

        parts = self.generate_content.call_args.kwargs["contents"][0].parts
        self.assertEqual(parts[1].inline_data.mime_type, "image/jpeg")
        self.assertEqual(parts[1].inline_data.data, b"jpeg-bytes")


class TestAppRoutes(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app(Settings()))

    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_index_page(self):
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("text/html", resp.headers["content-type"])
        self.assertIn("/api/generate", resp.text)

    def test_unknown_route_uses_error_payload(self):
        resp = self.client.get("/api/missing")
        self.assertEqual(resp.status_code, 404)
        self.assertIn("error", resp.json())


if __name__ == "__main__":
    unittest.main()
