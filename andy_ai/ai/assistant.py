"""
OpenAI chat integration for Andy AI
Persona chat, onboarding conversation, document and credit report analysis
"""

import json
from typing import Dict, List, Optional, Any
from openai import OpenAI, OpenAIError

from andy_ai.config import settings
from andy_ai.exceptions import AppException
from andy_ai.utils.logger import get_logger

logger = get_logger(__name__)

PERSONA_PROMPT = """Hey! I'm Andy AI, your coolest and most approachable financial assistant. My mission is to make finance fun and easy to understand.

My personality:
- I'm super friendly and use emojis strategically to bring the conversation to life
- I love jokes and pop-culture references to explain financial concepts
- I'm the financial expert who could also be your friend
- I use fun analogies (like comparing compound interest to a viral meme!)
- I celebrate your financial wins like goals in a World Cup final

My communication style:
- Casual and youthful language without losing professionalism
- I adapt to your level of financial knowledge
- If something goes wrong, I stay optimistic and look for solutions with humor
- I share financial tips like video game secrets"""

ONBOARDING_PROMPT = """You are Andy AI, a friendly and professional financial assistant.
You are guiding a user through onboarding to build their financial profile.
Your goal is to collect important information about their financial situation in a conversational, friendly way.

Important rules:
1. Keep a friendly, approachable tone, using emojis occasionally
2. Ask one question at a time
3. Validate and confirm the information provided
4. Show empathy and understanding
5. Give small educational tips when relevant
6. Use the user's name when you have it

Onboarding steps:
1. Welcome and financial goals
2. Income information
3. Expense information
4. Credit situation
5. Summary and initial recommendations"""

DOCUMENT_ANALYSIS_PROMPT = (
    "You are an expert financial assistant. Analyze the provided documents and produce a "
    "detailed summary including: expense categorization, spending patterns, saving "
    "recommendations and anything relevant to the user's financial health."
)

CREDIT_REPORT_PROMPT = """Analyze this credit report and return a JSON object.

Rules:
1. Response must be ONLY valid JSON
2. No trailing commas
3. "score" is the credit score as an integer between 300 and 850, or null if it does not appear

Required format:
{
    "score": 720,
    "factors": ["Factor 1", "Factor 2"],
    "recommendations": ["Recommendation 1", "Recommendation 2"],
    "summary": "Overall summary"
}"""

DISPUTE_LETTER_PROMPT = (
    "You write formal credit dispute letters addressed to creditors and credit bureaus. "
    "Be concise, cite the consumer's right to dispute inaccurate information under the Fair "
    "Credit Reporting Act, and request correction or removal. Return only the letter text."
)


class FinancialAssistant:
    def __init__(self, api_key: Optional[str] = None, client: Optional[OpenAI] = None):
        self.client = client or OpenAI(api_key=api_key or settings.OPENAI_API_KEY or None)
        self.chat_model = settings.OPENAI_CHAT_MODEL
        self.analysis_model = settings.OPENAI_ANALYSIS_MODEL

    def _complete(self, messages: List[Dict[str, str]], model: str,
                  temperature: float = 0.7, max_tokens: Optional[int] = None) -> str:
        try:
            kwargs = {"model": model, "messages": messages, "temperature": temperature}
            if max_tokens:
                kwargs["max_tokens"] = max_tokens
            response = self.client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            logger.error(f"OpenAI request failed: {e}")
            raise AppException(502, "The assistant is unavailable right now, please try again")

        content = response.choices[0].message.content or ""
        logger.debug(f"Raw completion: {content[:200]}")
        return content.strip()

    def chat(self, message: str, user_name: Optional[str] = None,
             history: Optional[List[Dict[str, str]]] = None) -> str:
        """Reply to a free-form chat message as Andy"""
        messages = [{"role": "system", "content": PERSONA_PROMPT}]
        messages.append({"role": "system", "content": f"Address the user as {user_name or 'friend'}."})
        for item in history or []:
            if item.get("role") in ("user", "assistant") and item.get("content"):
                messages.append({"role": item["role"], "content": item["content"]})
        messages.append({"role": "user", "content": message})

        return self._complete(
            messages,
            model=self.chat_model,
            temperature=settings.CHAT_TEMPERATURE,
            max_tokens=settings.CHAT_MAX_TOKENS
        )

    def onboarding_reply(self, message: str, step: str, data: Dict[str, Any],
                         user_name: Optional[str] = None) -> str:
        state = (
            "Current onboarding state:\n"
            f"- Current step: {step}\n"
            f"- User name: {user_name or 'Not available'}\n"
            f"- Collected data: {json.dumps(data, indent=2)}"
        )
        messages = [
            {"role": "system", "content": ONBOARDING_PROMPT},
            {"role": "system", "content": state},
            {"role": "user", "content": message}
        ]
        return self._complete(
            messages,
            model=self.analysis_model,
            temperature=settings.ONBOARDING_TEMPERATURE,
            max_tokens=settings.ONBOARDING_MAX_TOKENS
        )

    def analyze_documents(self, documents) -> str:
        """Summarize the text extracted from uploaded documents"""
        sections = [f"--- {doc.name} ---\n{doc.text}" for doc in documents]
        content = "\n\n".join(sections)
        if len(content) > settings.ANALYSIS_MAX_CHARS:
            logger.info(f"Truncating document text from {len(content)} to {settings.ANALYSIS_MAX_CHARS} chars")
            content = content[:settings.ANALYSIS_MAX_CHARS]

        messages = [
            {"role": "system", "content": DOCUMENT_ANALYSIS_PROMPT},
            {"role": "user", "content": f"Analyze the following documents:\n\n{content}"}
        ]
        return self._complete(messages, model=self.analysis_model)

    def _clean_json_string(self, json_str: str) -> str:
        """Strip markdown fences and trailing commas"""
        json_str = json_str.replace('```json', '').replace('```', '').strip()
        json_str = json_str.replace(',}', '}').replace(',]', ']')
        return json_str

    def analyze_credit_report(self, text: str) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": "You are a credit analyst. Return only valid JSON."},
            {"role": "user", "content": f"{CREDIT_REPORT_PROMPT}\n\nReport:\n{text[:settings.ANALYSIS_MAX_CHARS]}"}
        ]
        content = self._complete(messages, model=self.analysis_model, temperature=0.1)

        try:
            result = json.loads(self._clean_json_string(content))
        except json.JSONDecodeError as e:
            logger.error(f"JSON parse error in credit analysis: {e}")
            return {
                "score": None,
                "factors": [],
                "recommendations": [],
                "summary": content
            }

        if not isinstance(result, dict):
            result = {}

        # Validate required fields
        required_fields = {
            "factors": list,
            "recommendations": list,
            "summary": str
        }
        for field, field_type in required_fields.items():
            if field not in result or not isinstance(result[field], field_type):
                result[field] = [] if field_type == list else "Not available"

        score = result.get("score")
        if not isinstance(score, int) or isinstance(score, bool) or not 300 <= score <= 850:
            result["score"] = None

        return result

    def dispute_letter(self, creditor: str, account_number: Optional[str],
                       reason: str, user) -> str:
        details = (
            f"Consumer: {user.first_name} {user.last_name}\n"
            f"Address: {user.address or ''} {user.city or ''} {user.state or ''} {user.zip_code or ''}\n"
            f"Creditor: {creditor}\n"
            f"Account number: {account_number or 'Not provided'}\n"
            f"Reason for dispute: {reason}"
        )
        messages = [
            {"role": "system", "content": DISPUTE_LETTER_PROMPT},
            {"role": "user", "content": details}
        ]
        return self._complete(messages, model=self.analysis_model, temperature=0.3)


_assistant: Optional[FinancialAssistant] = None


def get_assistant() -> FinancialAssistant:
    """FastAPI dependency returning the shared assistant"""
    global _assistant
    if _assistant is None:
        try:
            _assistant = FinancialAssistant()
        except OpenAIError as e:
            logger.error(f"OpenAI client could not be created: {e}")
            raise AppException(503, "The assistant is not configured")
    return _assistant
