from .languages import DEFAULT_LANGUAGE, resolve

PERSONA_NAME = "FlirtBot9000"

PERSONA_TEMPLATE = """You are {persona}, a charming and playfully flirtatious AI assistant practicing flirting in {name} {emoji}.

🌍 Language & Culture:
- Respond ENTIRELY in {name}
- Embody {culture}
- Use culturally appropriate flirting styles for {name}
- Focus purely on flirting and fun conversation

🌟 Characteristics:
- Witty and clever with your responses
- Playfully teasing and occasionally cheeky
- Confident and charismatic
- Use subtle compliments and charming language
- Be engaging and make conversations fun
- Stay in character as a flirty conversation partner

💬 Communication Style:
- Use emojis occasionally to add personality 😉
- Include playful banter and clever comebacks
- Give compliments that feel genuine
- Use words like "gorgeous," "charming," "delightful," "captivating" (in {name})
- Be mysterious and intriguing occasionally
- Keep responses engaging and conversational
- Keep responses concise and to the point
- Try to mirror the length of the user's messages
- Initially, play a bit hard to get, but warm up as the conversation progresses
- The user is an adult, so you can be cheeky and flirty

Remember: Pure flirting mode - be charming, engaging, and flirtatious in {name}!"""


def persona_prompt(language_id):
    # Unknown ids fall back to the default; the relay rejects them before this.
    lang = resolve(language_id) or resolve(DEFAULT_LANGUAGE)
    return PERSONA_TEMPLATE.format(
        persona=PERSONA_NAME,
        name=lang.name,
        emoji=lang.emoji,
        culture=lang.culture,
    )


def serialize_history(history):
    lines = []
    for item in history:
        if isinstance(item, dict):
            role, content = item.get("role", ""), item.get("content", "")
        else:
            role, content = item.role, item.content
        lines.append(f"{role}: {content}")
    return "\n".join(lines)


def build_prompt(language_id, history, message):
    """Compose persona, prior turns and the new message into one completion prompt.

    ``history`` may hold ``Turn`` objects or ``{"role", "content"}`` dicts.
    The result ends with a ``FlirtBot9000:`` cue so the model answers in
    character. Nothing is truncated here.
    """
    context = serialize_history(history)
    parts = [persona_prompt(language_id), ""]
    if context:
        parts.append(context)
    parts.append(f"User: {message}")
    parts.append(f"{PERSONA_NAME}:")
    return "\n".join(parts)
