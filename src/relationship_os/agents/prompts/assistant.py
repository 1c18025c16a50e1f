"""System prompts and templates for the Assistant Agent."""

QUOTE_SUMMARY_SYSTEM_PROMPT = (
    "You are an expert explaining B2B subscription quotes to customers."
)

SUBSCRIPTION_INSIGHTS_SYSTEM_PROMPT = (
    "You are an AI that gives insights about subscription usage and cost optimization."
)

QUOTE_SUMMARY_TEMPLATE = """Quote {quote_number}
Total: {total_amount} {currency}
Lines:
{lines}
"""

QUOTE_LINE_TEMPLATE = "{name} ({type}) x{quantity} @ {unit_price}"

# Placeholder replies when the provider cannot answer
AI_NOT_CONFIGURED = "AI is not configured on this server yet."
AI_RATE_LIMITED = "AI is temporarily unavailable due to rate limits. Please try again later."
AI_UNAVAILABLE = "AI is currently unavailable."
