"""
Input validation schemas using Marshmallow for API endpoints.
"""
from marshmallow import Schema, fields, validate, validates, validates_schema, ValidationError

from common.uploads import is_allowed_document


class AnalyzeRequestSchema(Schema):
    """Validation schema for the form fields of a contract analysis request."""
    prompt = fields.Str(
        required=False,
        allow_none=True,
        load_default="",
        error_messages={'invalid': 'Prompt must be a string'}
    )

    def __init__(self, *args, max_prompt_chars: int = 4000, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_prompt_chars = max_prompt_chars

    @validates("prompt")
    def validate_prompt_length(self, value, **kwargs):
        if value and len(value) > self.max_prompt_chars:
            raise ValidationError(f"Prompt must be at most {self.max_prompt_chars} characters")


class FileUploadSchema(Schema):
    """Validation schema for file uploads."""
    filename = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=255),
        error_messages={
            'required': 'No file provided',
            'invalid': 'Filename must be a valid string'
        }
    )
    content_length = fields.Int(
        required=False,
        validate=validate.Range(min=0),
        error_messages={'invalid': 'File size must be valid'}
    )
    mimetype = fields.Str(required=False, allow_none=True)

    @validates_schema
    def validate_document_type(self, data, **kwargs):
        if not is_allowed_document(data.get("filename", ""), data.get("mimetype")):
            raise ValidationError("Unsupported file type. Upload a PDF, DOCX or TXT file.", "filename")
