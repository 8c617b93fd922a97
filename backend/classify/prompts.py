"""Classification prompts for feedback categorization."""

CLASSIFICATION_PROMPT = """You are a PM assistant classifying customer feedback.

Analyze this feedback and classify it.

Priority rules:
- urgent: Revenue blocker, security issue, data loss, system down
- high: Enterprise customer, multiple people affected, competitor comparison
- medium: Clear feature request, reasonable engagement, specific use case
- low: General question, praise, minor suggestion

Category rules:
- bug: Something broken, error, crash, not working as expected
- feature_request: Wants new capability, integration, improvement
- praise: Positive feedback, recommendation, compliment
- question: Asking how to do something, unclear about feature
- complaint: Negative about existing feature, pricing, support quality
- other: Doesn't fit above categories

Customer segment detection:
- enterprise: Mentions team size >100, compliance, SSO, enterprise features
- mid-market: Mentions team of 20-100, growing company
- smb: Individual or small team, price sensitive
- unknown: Can't determine

Return up to 5 keywords, most important first."""

COMPANY_CONTEXT_PREFIX = """You are classifying feedback for:
{company_context}

Prioritize items relevant to this product's market and current focus.

"""

CLASSIFICATION_SCHEMA = {
    "type": "object",
    "properties": {
        "category": {
            "type": "string",
            "enum": ["bug", "feature_request", "praise", "question", "complaint", "other"],
        },
        "confidence": {
            "type": "integer",
            "description": "Confidence score from 0 to 100",
        },
        "priority": {
            "type": "string",
            "enum": ["low", "medium", "high", "urgent"],
        },
        "priorityReasons": {
            "type": "array",
            "items": {"type": "string"},
        },
        "sentiment": {
            "type": "string",
            "enum": ["positive", "negative", "neutral"],
        },
        "keywords": {
            "type": "array",
            "items": {"type": "string"},
        },
        "customerSegment": {
            "type": "string",
            "enum": ["enterprise", "mid-market", "smb", "unknown"],
        },
    },
    "required": [
        "category",
        "confidence",
        "priority",
        "priorityReasons",
        "sentiment",
        "keywords",
        "customerSegment",
    ],
    "additionalProperties": False,
}


def build_system_prompt(company_context: str | None = None) -> str:
    if company_context:
        return (
            COMPANY_CONTEXT_PREFIX.format(company_context=company_context)
            + CLASSIFICATION_PROMPT
        )
    return CLASSIFICATION_PROMPT
