import logging

import openai
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from openai import OpenAI

import config
from intake import is_image, strip_data_url
from parsing import parse_structured_reply
from schemas import ScanRequest

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

# CORS headers are attached to every response by hand so that any OPTIONS
# request, browser preflight included, gets the same empty 200.
app = FastAPI(title="OsteoVision scan analysis proxy")


@app.get("/health")
def health():
    return JSONResponse({"status": "ok"}, headers=CORS_HEADERS)


# ============================================================
# SYSTEM PROMPT
# ============================================================

system_prompt = """You are an advanced medical imaging AI assistant specialized in bone fracture detection and musculoskeletal abnormality analysis. You analyze medical scans (X-rays, CT scans, MRI) to detect bone fractures, abnormalities, and other conditions.

IMPORTANT DISCLAIMER: This is an AI-assisted analysis tool for educational and screening purposes only. All findings must be verified by a qualified medical professional.

When analyzing an image, you must provide a structured analysis in the following JSON format:

{
  "scanAnalysis": {
    "scanType": "X-ray/CT/MRI",
    "bodyRegion": "specific anatomical region",
    "imageQuality": "Good/Fair/Poor"
  },
  "findings": [
    {
      "type": "Fracture/Abnormality type",
      "location": "Specific bone and location",
      "description": "Detailed description of the finding",
      "severity": "Mild/Moderate/Severe/Critical",
      "confidence": 0.95
    }
  ],
  "overallSeverity": "Normal/Mild/Moderate/Severe/Critical",
  "severityScore": 0-100,
  "recommendations": {
    "immediateAction": "What needs to be done immediately",
    "specialistReferral": {
      "type": "Orthopedic Surgeon/Oncologist/Rheumatologist/Neurologist/etc.",
      "urgency": "Routine/Urgent/Emergency",
      "reason": "Why this specialist is recommended"
    },
    "suggestedMedications": [
      {
        "name": "Medication name",
        "purpose": "Pain relief/Anti-inflammatory/etc.",
        "note": "Must be prescribed by physician"
      }
    ],
    "additionalTests": ["Any additional imaging or tests recommended"]
  },
  "summary": "A comprehensive but concise summary of findings in 2-3 sentences",
  "disclaimer": "This AI analysis is for screening purposes only. Please consult a qualified healthcare professional for diagnosis and treatment."
}

Analyze the medical scan image provided and return ONLY the JSON response with your analysis. Be thorough but accurate. If you cannot detect any abnormalities, indicate normal findings. Always err on the side of caution for patient safety."""


# ============================================================
# ERRORS
# ============================================================

NO_IMAGE_MESSAGE = "No image provided"
INVALID_BODY_MESSAGE = "Invalid request body"
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
CREDITS_MESSAGE = "AI credits exhausted. Please add credits to continue."
TIMEOUT_MESSAGE = "AI gateway timed out. Please try again."
UNREACHABLE_MESSAGE = "AI gateway unreachable"
EMPTY_REPLY_MESSAGE = "No response from AI model"


class ProxyError(Exception):
    """A failure with a fixed outward status and message."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def json_response(body, status_code: int = 200) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=CORS_HEADERS)


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request body: %s", exc.errors())
    return json_response({"error": INVALID_BODY_MESSAGE}, 400)


# ============================================================
# UPSTREAM CALL
# ============================================================

def create_client(api_key: str) -> OpenAI:
    # retries are handled below, only for timeouts
    return OpenAI(
        api_key=api_key,
        base_url=config.OPENAI_BASE_URL,
        timeout=config.AI_TIMEOUT_SECONDS,
        max_retries=0,
    )


def build_messages(image_base64: str, scan_type=None, mime_type=None) -> list:
    if not is_image(mime_type):
        mime_type = "image/jpeg"
    image_url = f"data:{mime_type};base64,{strip_data_url(image_base64)}"
    return [
        {"role": "system", "content": system_prompt},
        {
            "role": "user",
            "content": [
                {
                    "type": "text",
                    "text": (
                        f"Please analyze this {scan_type or 'medical'} scan for bone fractures, "
                        "abnormalities, and any other concerning findings. Provide a comprehensive "
                        "analysis with severity assessment, specialist recommendations, and "
                        "suggested medications."
                    ),
                },
                {"type": "image_url", "image_url": {"url": image_url}},
            ],
        },
    ]


def request_completion(client, messages: list) -> str:
    attempts = config.AI_TIMEOUT_RETRIES + 1

    for attempt in range(1, attempts + 1):
        try:
            response = client.chat.completions.create(
                model=config.OPENAI_MODEL_VISION,
                messages=messages,
                max_tokens=config.AI_MAX_TOKENS,
                temperature=config.AI_TEMPERATURE,
            )
        except openai.APITimeoutError:
            logger.warning("AI gateway timed out (attempt %d of %d)", attempt, attempts)
            if attempt == attempts:
                raise ProxyError(504, TIMEOUT_MESSAGE)
            continue
        except openai.RateLimitError:
            logger.warning("AI gateway rate limited the request")
            raise ProxyError(429, RATE_LIMIT_MESSAGE)
        except openai.APIStatusError as e:
            if e.status_code == 402:
                logger.warning("AI gateway credits exhausted")
                raise ProxyError(402, CREDITS_MESSAGE)
            logger.error("AI gateway error: %s %s", e.status_code, e.response.text)
            raise ProxyError(500, f"AI gateway error: {e.status_code}")
        except openai.APIConnectionError as e:
            logger.error("AI gateway connection failed: %s", e)
            raise ProxyError(500, UNREACHABLE_MESSAGE)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProxyError(500, EMPTY_REPLY_MESSAGE)
        return content


# ============================================================
# ANALYZE ENDPOINT
# ============================================================

@app.options("/analyze-scan")
def analyze_scan_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@app.post("/analyze-scan")
def analyze_scan(data: ScanRequest):

    if not data.imageBase64:
        return json_response({"error": NO_IMAGE_MESSAGE}, 400)

    try:
        api_key = config.openai_api_key()
        if not api_key:
            logger.error("OPENAI_API_KEY is not configured")
            raise ProxyError(500, "OPENAI_API_KEY is not configured")

        messages = build_messages(data.imageBase64, data.scanType, data.mimeType)
        raw = request_completion(create_client(api_key), messages)

        reply = parse_structured_reply(raw)
        if reply.ok:
            logger.info("Scan analysis completed successfully")
        else:
            logger.info("Scan analysis completed with an unparsed reply")

        return json_response({"analysis": reply.to_payload()})

    except ProxyError as e:
        return json_response({"error": e.message}, e.status_code)
    except Exception as e:
        logger.exception("Error in analyze-scan")
        return json_response({"error": str(e) or "Unknown error occurred"}, 500)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
