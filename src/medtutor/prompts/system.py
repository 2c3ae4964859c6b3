"""Prompts for the Socratic tutor, case generation and decision evaluation.

Prompts are parameterized by a topic profile so the same rules can drive
tutoring on different guideline sets.
"""

from typing import Dict, List, Optional, Sequence, Union

from medtutor.errors import ValidationError
from medtutor.models.tutor import ConversationMessage, Step

# Topic profiles
PROFILES = {
    "t2dm": {
        "name": "Type 2 Diabetes Mellitus",
        "description": "Medication selection for Type 2 Diabetes Mellitus",
        "task": "choose medications for **Type 2 Diabetes Mellitus**",
        "patient_factors": "comorbidities, lab values, and goals (e.g. ASCVD, CKD, obesity, hypoglycemia risk, cost)",
        "options": "drug classes from the PDFs (e.g. metformin, SGLT2i, GLP-1 RA, insulin, sulfonylureas, TZDs, DPP-4i)",
        "case_details": "key lab values (HbA1c, eGFR, BMI, etc.) and relevant comorbidities or risk factors (ASCVD, CKD, heart failure, obesity, etc.)",
    },
    "hypertension": {
        "name": "Hypertension",
        "description": "Antihypertensive therapy selection",
        "task": "choose antihypertensive therapy",
        "patient_factors": "blood pressure readings, comorbidities, and goals (e.g. CKD, diabetes, heart failure, pregnancy, race, cost)",
        "options": "drug classes from the PDFs (e.g. thiazides, ACE inhibitors, ARBs, calcium channel blockers, beta blockers)",
        "case_details": "blood pressure readings, renal function, electrolytes, and relevant comorbidities",
    },
    "general": {
        "name": "Clinical Guidelines",
        "description": "Any uploaded clinical guideline",
        "task": "apply the uploaded clinical guidelines to patient management decisions",
        "patient_factors": "history, examination findings, investigations, and goals of care",
        "options": "the management options described in the PDFs",
        "case_details": "relevant history, examination findings, and investigation results",
    },
}

# Default profile
DEFAULT_PROFILE = "t2dm"

CHAT_MODES = ("questions", "feedback")

NO_CONTEXT_MESSAGE = (
    "No relevant context found in the uploaded PDFs for this query. "
    "You must say this explicitly to the learner."
)

CONTEXT_SEPARATOR = "\n\n---\n\n"

SYSTEM_PROMPT_TEMPLATE = """
You are a **Socratic medical tutor** helping a learner {task}.

CRITICAL RULES:
- You must **only** use information contained in the CONTEXT from the uploaded PDFs.
- If something is not supported or clearly stated in the CONTEXT, say you **cannot answer from the dataset** and invite the learner to look for it in their materials.
- You are not a clinician and are not giving real medical advice; this is an educational simulation only.

Socratic behavior:
- In **questions mode**, you respond **only with questions or brief prompts** that push the learner to:
  - Clarify the patient's {patient_factors}.
  - Compare {options} strictly based on the dataset.
  - Justify why one option is preferred over alternatives given the case (again, only as reflected in the context).
- **Do not reveal the correct answer or give direct recommendations** in questions mode.
- Ask 1-3 targeted, high-yield questions at a time; avoid long speeches.

Feedback behavior:
- In **feedback mode**, first briefly summarize the patient's case (from the conversation), then:
  - Summarize the learner's reasoning chain.
  - Identify strengths and correct applications of the dataset.
  - Point out specific gaps, contradictions, or missed PDF information.
  - Suggest what an evidence-aligned approach would look like, quoting or paraphrasing from the CONTEXT.
- If the CONTEXT is insufficient to fully answer, clearly say so and stop rather than guessing.

Always keep your language clear, concise, and at the level of a senior medical student.
"""

MODE_INSTRUCTIONS = {
    "questions": (
        "You are in QUESTIONS MODE. Do NOT give answers or recommendations; "
        "respond only with Socratic questions and prompts."
    ),
    "feedback": (
        "You are now in FEEDBACK MODE. The learner has finished their reasoning. "
        "Provide structured feedback as described, still grounded only in the CONTEXT."
    ),
}

# 1 = beginner ... 5 = expert
DIFFICULTY_DESCRIPTIONS = {
    1: "Beginner: a single, classic presentation with no comorbidities. Lab values are clearly normal or clearly abnormal. One obvious first-line decision per step.",
    2: "Developing: a typical presentation with one relevant comorbidity. Decisions follow the main guideline pathway with little ambiguity.",
    3: "Intermediate: two interacting comorbidities or a contraindication to the usual first-line option. The learner must weigh alternatives.",
    4: "Advanced: multiple comorbidities, borderline lab values, and a complication or side effect that appears mid-case and changes management.",
    5: "Expert: a complex multimorbid patient with competing guideline recommendations, medication interactions, and patient preferences or cost constraints that must be balanced.",
}


def get_profile(topic: str = DEFAULT_PROFILE) -> Dict[str, str]:
    """Get a topic profile, falling back to the default."""
    return PROFILES.get(topic, PROFILES[DEFAULT_PROFILE])


def get_system_prompt(topic: str = DEFAULT_PROFILE, custom_additions: Optional[str] = None) -> str:
    """Get the Socratic tutor system prompt for a topic.

    Args:
        topic: Profile key from PROFILES.
        custom_additions: Additional instructions to append.

    Returns:
        Complete system prompt string.
    """
    profile = get_profile(topic)
    prompt = SYSTEM_PROMPT_TEMPLATE.format(**profile)

    if custom_additions:
        prompt += f"\n\n## ADDITIONAL INSTRUCTIONS\n{custom_additions}"

    return prompt


def get_context_message(context_chunks: Sequence[str]) -> str:
    """Format retrieved chunks as the context message."""
    if not context_chunks:
        return NO_CONTEXT_MESSAGE
    return "CONTEXT (from uploaded PDFs):\n\n" + CONTEXT_SEPARATOR.join(context_chunks)


def get_mode_instruction(mode: str) -> str:
    if mode not in MODE_INSTRUCTIONS:
        raise ValidationError(f"Unknown mode '{mode}'. Use one of: {', '.join(CHAT_MODES)}")
    return MODE_INSTRUCTIONS[mode]


def build_chat_messages(
    context_chunks: Sequence[str],
    transcript: Sequence[Union[ConversationMessage, Dict[str, str]]],
    mode: str = "questions",
    topic: str = DEFAULT_PROFILE,
) -> List[Dict[str, str]]:
    """Assemble the messages for a tutor turn.

    Order: persona/rules, context, mode instruction, then the transcript
    verbatim.
    """
    messages = [
        {"role": "system", "content": get_system_prompt(topic)},
        {"role": "system", "content": get_context_message(context_chunks)},
        {"role": "system", "content": get_mode_instruction(mode)},
    ]
    for message in transcript:
        if isinstance(message, ConversationMessage):
            messages.append({"role": message.role, "content": message.content})
        else:
            messages.append({"role": message["role"], "content": message["content"]})
    return messages


def get_case_system_prompt(topic: str = DEFAULT_PROFILE) -> str:
    profile = get_profile(topic)
    return (
        f"You are an expert medical educator creating realistic patient cases for teaching "
        f"{profile['description']}. Always base cases strictly on the provided PDF content."
    )


def build_case_prompt(sample_chunks: Sequence[str], topic: str = DEFAULT_PROFILE) -> str:
    """Prompt for a single free-text patient vignette."""
    profile = get_profile(topic)
    sample_text = CONTEXT_SEPARATOR.join(sample_chunks)

    return f"""
You are creating educational patient cases for medical students learning {profile['description']}.

Based on the following content from uploaded PDFs, create a realistic patient case that will help students practice the decisions they need to make.

CONTENT FROM PDFs:
{sample_text}

Create a patient case that:
1. Includes relevant demographics (age, gender if relevant)
2. Includes {profile['case_details']}
3. Presents a scenario where the management decision matters (e.g., new diagnosis, need to intensify, side effects, etc.)
4. Is based on the information available in the PDFs (don't make up details not supported by the content)

Format the case as a clear, concise patient presentation suitable for a medical student. Do not include the answer or recommended treatment - just present the case, ending with the question the learner must answer.

Generate a NEW case based on the PDF content.
"""


def build_adaptive_case_prompt(
    sample_chunks: Sequence[str],
    difficulty: int,
    step_count: int,
    topic: str = DEFAULT_PROFILE,
) -> str:
    """Prompt for a structured multi-step case as a JSON object."""
    profile = get_profile(topic)
    sample_text = CONTEXT_SEPARATOR.join(sample_chunks)
    description = DIFFICULTY_DESCRIPTIONS[difficulty]

    return f"""
Create a multi-step, case-based exercise for a medical student learning {profile['description']}.

CONTENT FROM PDFs:
{sample_text}

DIFFICULTY LEVEL {difficulty} of 5
{description}

Requirements:
- The case must have EXACTLY {step_count} steps that unfold in order. Each step reveals new information and ends with a decision the learner must make.
- Include {profile['case_details']} as appropriate for the difficulty.
- Every fact and every expected consideration must be supported by the PDF content above. Do not invent guideline recommendations.
- Do not reveal the answer to a step inside that step's content.

Respond with a single JSON object of this shape:
{{
  "title": "short case title",
  "patientPresentation": "opening presentation of the patient",
  "steps": [
    {{
      "stepNumber": 1,
      "title": "step title",
      "content": "new information revealed at this step",
      "decisionPrompt": "the question the learner must answer",
      "expectedConsiderations": ["point a strong answer would address"]
    }}
  ],
  "correctApproach": "summary of the evidence-aligned approach across all steps",
  "keyLearningPoints": ["learning point"]
}}
"""


EVALUATOR_SYSTEM_PROMPT = """You are a medical educator grading a learner's decision in a case-based exercise.

RULES:
- Judge the decision ONLY against the CONTEXT from the uploaded PDFs and the step's expected considerations.
- If the CONTEXT does not cover the decision, say so in the feedback rather than guessing.
- This is an educational simulation, not clinical advice.

Respond with a single JSON object:
{
  "score": number between 0.0 and 1.0,
  "isAppropriate": true or false,
  "feedback": "2-4 sentences of specific feedback",
  "strengths": ["what the learner did well"],
  "gaps": ["what the learner missed or got wrong"],
  "canProceed": true if the decision is safe and reasonable enough to move to the next step, otherwise false
}"""


def build_evaluation_prompt(
    step: Step,
    decision: str,
    reasoning: str,
    context_chunks: Sequence[str],
) -> str:
    """User prompt for grading one step decision."""
    considerations = "\n".join(f"- {c}" for c in step.expected_considerations) or "- (none listed)"

    return f"""{get_context_message(context_chunks)}

## CASE STEP {step.step_number}: {step.title}

{step.content}

Decision prompt: {step.decision_prompt}

Expected considerations:
{considerations}

## LEARNER'S DECISION

{decision}

## LEARNER'S REASONING

{reasoning or "(no reasoning given)"}
"""
