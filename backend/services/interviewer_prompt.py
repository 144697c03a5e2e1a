# services/interviewer_prompt.py
"""
Interviewer Prompt Generator
Asks a Groq-hosted model to write the operating prompt an interviewer
persona uses for the rest of a voice session.
"""
import asyncio
import re
from typing import Any, Optional

from groq import AsyncGroq, GroqError

from config import Settings
from utils.errors import SetupError
from utils.logger import get_logger

logger = get_logger("InterviewerPrompt")

META_PROMPT_TEMPLATE = (
    "what prompt should i give to a voice agent ai to act like an interviewer for the user? "
    "specifically an interviewer for a {role} role, not the HR interview, the actual expert is "
    "interviewing. give me full extensive prompt. don't give the ai agent specific questions, give "
    "100 questions the ai agent will choose randomly from: 90 technical questions related to their "
    "direct work, and 10 of which are behavioral questions, all 100 should be mixed (the 10 "
    "behavioral don't have to be the last 10), and the ai agent should only choose some randomly "
    "from them (make sure the agent understands that). IMPORTANT: Do not ask any coding questions "
    "or questions that require the user to write or read code, as this is a voice-only interview. "
    "Focus on conceptual and theoretical questions. also make the interview not so long, it should "
    "start friendly though by one or two normal interview questions like introductions. For the "
    "record the interviewer name is {interviewer_name}, and if the user asks the ai agent any "
    "personal questions they can make things up that make sense, like they are human not AI, if "
    "the user ask about interview structure they also should give an answer that makes sense, "
    "telling them about some kind of structure they are following (they shouldn't mention the "
    "random questions lists for example). also ask the model to give feedback in the end to the "
    "user, the agent must be honest on how they see the candidate and how they stand. CRITICAL "
    "INSTRUCTION: The agent must NEVER use markdown formatting (like **bold**, *italics*, or lists) "
    "in its responses. It must speak in plain text only, as the output will be read by a "
    "text-to-speech engine which gets confused by special characters. Explicitly tell the agent to "
    "avoid asterisks. only answer with the prompt, your answer should start with \"You are..\", I "
    "will take your output and give it directly to the ai agent, don't put specific format in the "
    "prompt like code format or md format, try to make it all normal text"
)

_UNDERSCORE_EMPHASIS = re.compile(r"(?<!\w)_(?=\S)(.+?)(?<=\S)_(?!\w)")


def build_meta_prompt(role: str, interviewer_name: str) -> str:
    return META_PROMPT_TEMPLATE.format(role=role, interviewer_name=interviewer_name)


def strip_markdown_emphasis(text: str) -> str:
    """Remove emphasis markers a TTS engine would read aloud."""
    text = text.replace("*", "").replace("__", "").replace("~~", "")
    text = _UNDERSCORE_EMPHASIS.sub(r"\1", text)
    return text.strip()


class InterviewerPromptGenerator:
    """Generates interviewer instructions via Groq Chat Completions."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.model = settings.interviewer_prompt_model
        self.temperature = settings.interviewer_prompt_temperature
        self.max_tokens = settings.interviewer_prompt_max_tokens
        self.timeout = settings.interviewer_prompt_timeout
        if client is not None:
            self.client = client
        elif settings.groq_api_key:
            self.client = AsyncGroq(api_key=settings.groq_api_key)
        else:
            logger.error("Groq API key not configured")
            self.client = None

    async def generate(self, role: str, interviewer_name: str) -> str:
        """
        Produce the operating prompt for one interview session.

        Raises:
            SetupError: on any failure; there is no fallback prompt.
        """
        if not self.client:
            raise SetupError("GROQ_API_KEY is missing")
        if not role:
            raise SetupError("Missing required parameter: role")

        meta_prompt = build_meta_prompt(role, interviewer_name)
        try:
            completion = await asyncio.wait_for(
                self.client.chat.completions.create(
                    messages=[{"role": "user", "content": meta_prompt}],
                    model=self.model,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    stream=False,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Interviewer prompt timed out after {self.timeout}s")
            raise SetupError("Failed to generate interviewer prompt: timed out") from e
        except GroqError as e:
            logger.error(f"Groq generation error: {e}", exc_info=True)
            raise SetupError(f"Failed to generate interviewer prompt: {e}") from e

        choice = (getattr(completion, "choices", None) or [None])[0]
        message = getattr(choice, "message", None)
        content = getattr(message, "content", None)
        if not content or not content.strip():
            logger.error("Groq returned no content for interviewer prompt")
            raise SetupError("Failed to generate interviewer prompt: no content received")

        prompt = strip_markdown_emphasis(content)
        if not prompt:
            raise SetupError("Failed to generate interviewer prompt: no content received")
        logger.info(f"🧑‍💼 Interviewer prompt generated for {interviewer_name} ({len(prompt)} chars)")
        return prompt
