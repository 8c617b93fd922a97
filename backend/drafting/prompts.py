"""Drafting prompts for ticket generation."""

DRAFTING_PROMPT = """You are a PM assistant drafting tickets from customer feedback.

Create a ticket with:
1. Title: Clear, actionable, max 80 chars (e.g., "Add SSO/SAML authentication")
2. Description: Structured markdown with:
   - ## Context (1-2 sentences about the feedback source)
   - ## User Quote (direct quote from feedback)
   - ## Impact (who is affected, business impact)
   - ## Recommendation (suggested action)
   - ## Source (link to original)

Keep it concise. No fluff. Focus on actionable information."""

COMPANY_CONTEXT_PREFIX = """You are drafting tickets for:
{company_context}

Frame business impact and recommendations for this specific product.

"""

DRAFT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "Clear ticket title, max 80 characters",
        },
        "description": {
            "type": "string",
            "description": "Markdown description",
        },
        "suggestedLabels": {
            "type": "array",
            "items": {"type": "string"},
        },
        "suggestedPriority": {
            "type": "string",
            "enum": ["low", "medium", "high", "urgent"],
        },
    },
    "required": ["title", "description", "suggestedLabels", "suggestedPriority"],
    "additionalProperties": False,
}


def build_system_prompt(company_context: str | None = None) -> str:
    if company_context:
        return COMPANY_CONTEXT_PREFIX.format(company_context=company_context) + DRAFTING_PROMPT
    return DRAFTING_PROMPT
