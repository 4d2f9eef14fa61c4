from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str | None = Field(default=None, description="Text prompt describing the image or the edit")
    model: str | None = Field(default=None, description="Gemini model name (server default when omitted)")
    aspect_ratio: str = Field(default="1:1", alias="aspectRatio", description="Aspect ratio, honoured by gemini-3-pro-image-preview")
    image_size: str = Field(default="1K", alias="imageSize", description="Image size, honoured by gemini-3-pro-image-preview")
    edit_image: str | None = Field(default=None, alias="editImage", description="Optional source image as a base64 data URI")
    api_key: str | None = Field(default=None, alias="apiKey", description="Optional per-request Gemini API key override")


class GenerateResponse(BaseModel):
    image: str
    text: str = ""


class ErrorResponse(BaseModel):
    error: str
