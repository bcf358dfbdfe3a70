"""Learning memory extraction for questy_coach.

This module mines user messages for observable learning facts
(mistakes, insights, struggles, preferences, ...) using ordered
keyword patterns in Korean and English.
"""

import re
from datetime import datetime

from questy_coach.logging import get_logger
from questy_coach.models.memory import (
    Emotion,
    LearningMemory,
    MemoryExtractionRequest,
    MemoryType,
    Subject,
)
from questy_coach.utils import dates
from questy_coach.utils.hashing import generate_memory_id

__all__ = [
    "EMOTION_PATTERNS",
    "MEMORY_TYPE_PATTERNS",
    "SUBJECT_PATTERNS",
    "LearningMemoryCatcher",
]

logger = get_logger(__name__)


def _patterns(*sources: str) -> list[re.Pattern[str]]:
    return [re.compile(source, re.I) for source in sources]


# Ordered: the first type with any matching pattern wins
MEMORY_TYPE_PATTERNS: dict[MemoryType, list[re.Pattern[str]]] = {
    MemoryType.CORRECTION: _patterns(
        r"아니[야요]?,?\s*(그게 아니라|X 말고|틀렸어)|no,?\s+(?:that's not it|i meant)",
        r"수정해|고쳐|바꿔|\bcorrect(?:ion|ed)?\b|\bfix(?:ed)?\s+(?:it|my)",
        r"오답.*교정",
    ),
    MemoryType.DECISION: _patterns(
        r"결정했[어요다]|선택했[어요다]|\bi\s+(?:decided|chose)\b",
        r"(으로|로)\s*(하기로|결정)|\bgoing\s+with\b",
        r"이걸로\s*(할게|하자)|\blet'?s\s+go\s+with\b",
    ),
    MemoryType.INSIGHT: _patterns(
        r"깨달았[어요다]|알았[어요다]|이해했[어요다]|\brealized\b|\bnow\s+i\s+(?:get|understand)\b",
        r"아하|그렇구나|이래서|\baha\b|that'?s\s+why",
        r"드디어.*알겠|\bfinally\s+(?:get|got|understand)",
    ),
    MemoryType.PATTERN: _patterns(
        r"항상|매번|늘|습관적으로|\balways\b|\bevery\s+time\b|\bhabitually\b",
        r"이런\s*식으로|이\s*패턴|\bthis\s+pattern\b",
        r"나는.*경향|\bi\s+tend\s+to\b",
    ),
    MemoryType.GAP: _patterns(
        r"모르겠|어렵|이해.*안|don'?t\s+(?:get|understand)|\bno\s+idea\b",
        r"헷갈|혼란|막막|\bconfus",
        r"부족|약한|취약|\bweak\s+(?:at|in)\b",
    ),
    MemoryType.LEARNING: _patterns(
        r"배웠|공부했|학습했|\bi\s+(?:learned|studied)\b",
        r"이것.*기억|외웠|\bmemorized\b",
        r"새로.*알게|\bfound\s+out\b",
    ),
    MemoryType.MASTERY: _patterns(
        r"완벽|자신\s*있|할\s*수\s*있|\bconfident\b|\bperfect(?:ly)?\b|\bmastered\b",
        r"이건\s*알|다\s*알|\bi\s+know\s+(?:this|it)\b",
        r"쉬워|문제\s*없|\btoo\s+easy\b|\bno\s+problem\b",
    ),
    MemoryType.STRUGGLE: _patterns(
        r"어려워|힘들어|못\s*하겠|\bstruggl|\bcan'?t\s+do\b",
        r"계속.*틀려|반복.*실패|\bkeep\s+(?:getting|failing)",
        r"포기|지쳐|\bgive\s+up\b",
    ),
    MemoryType.WRONG_ANSWER: _patterns(
        r"틀렸[어요다]|오답|실수했|\bgot\s+(?:it|this)\s+wrong\b|\bmistake\b",
        r"맞히지.*못|틀린\s*이유|\bwrong\s+answer\b",
        r"왜\s*틀렸|\bwhy\s+(?:was|is)\s+(?:it|this)\s+wrong\b",
    ),
    MemoryType.STRATEGY: _patterns(
        r"이렇게.*풀[어면]|방법|전략|\bstrategy\b|\bmethod\b",
        r"접근.*방식|순서대로|\bapproach\b|\bstep\s+by\s+step\b",
        r"먼저.*그다음|\bfirst\b.*\bthen\b",
    ),
    MemoryType.PREFERENCE: _patterns(
        r"좋아|선호|편해|\bi\s+(?:like|prefer)\b",
        r"싫어|불편|귀찮|\bi\s+(?:hate|dislike)\b",
        r"이게\s*더\s*나|\bthis\s+is\s+better\b",
    ),
    MemoryType.EMOTION: _patterns(
        r"기분|느낌|감정|\bi\s+feel\b|\bmood\b",
        r"스트레스|불안|걱정|\bstress|\banxious\b|\bworried\b",
        r"기뻐|뿌듯|자랑스러|\bproud\b|\bhappy\b",
    ),
    MemoryType.PLAN_PERFORMANCE: _patterns(
        r"플랜.*완료|계획.*끝|학습.*마무리|\b(?:plan|schedule)\s+(?:done|completed|finished)\b",
        r"진행.*완료|달성.*목표|\bgoal\s+(?:reached|achieved)\b",
    ),
    MemoryType.REVIEW_PATTERN: _patterns(
        r"리뷰.*패턴|개선.*필요|반복.*문제|\bneeds?\s+improvement\b",
        r"학습.*패턴|효과.*검증|\bstudy\s+pattern\b",
    ),
}

SUBJECT_PATTERNS: dict[Subject, re.Pattern[str]] = {
    Subject.KOREAN: re.compile(r"국어|문학|비문학|독해|문법|화법|작문|\bkorean\b|\bliterature\b", re.I),
    Subject.MATH: re.compile(
        r"수학|미적분|확률|통계|기하|대수|함수|방정식"
        r"|\bmath|\bcalculus\b|\bprobability\b|\bstatistics\b|\bgeometry\b|\balgebra\b"
        r"|\bfunctions?\b|\bequations?\b",
        re.I,
    ),
    Subject.ENGLISH: re.compile(
        r"영어|영문|단어|문법|독해|리스닝|스피킹|\benglish\b|\bvocabulary\b|\bgrammar\b"
        r"|\blistening\b|\bspeaking\b",
        re.I,
    ),
    Subject.SCIENCE: re.compile(
        r"과학|물리|화학|생물|지구과학|실험|\bscience\b|\bphysics\b|\bchemistry\b|\bbiology\b"
        r"|\bexperiment",
        re.I,
    ),
    Subject.SOCIAL: re.compile(
        r"사회|역사|지리|경제|정치|윤리|\bsocial\s+studies\b|\bhistory\b|\bgeography\b"
        r"|\beconomics\b|\bpolitics\b|\bethics\b",
        re.I,
    ),
}

EMOTION_PATTERNS: dict[Emotion, re.Pattern[str]] = {
    Emotion.CONFIDENT: re.compile(r"자신\s*있|할\s*수\s*있|쉬워|완벽|\bconfident\b|\beasy\b", re.I),
    Emotion.CONFUSED: re.compile(r"헷갈|혼란|모르겠|이해.*안|\bconfus|don'?t\s+understand", re.I),
    Emotion.FRUSTRATED: re.compile(r"짜증|화나|답답|왜.*안|\bfrustrat|\bannoy|\bangry\b", re.I),
    Emotion.CURIOUS: re.compile(r"궁금|알고\s*싶|왜|어떻게|\bcurious\b|\bwonder|\bwhy\b|\bhow\b", re.I),
    Emotion.TIRED: re.compile(r"피곤|지쳐|힘들어|졸려|\btired\b|\bexhausted\b|\bsleepy\b", re.I),
    Emotion.MOTIVATED: re.compile(
        r"열심히|해볼|도전|흥미|\bmotivated\b|\bchallenge\b|\blet'?s\s+do\b", re.I
    ),
}

TITLE_PREFIX: dict[MemoryType, str] = {
    MemoryType.CORRECTION: "🔄 Correction: ",
    MemoryType.DECISION: "📌 Decision: ",
    MemoryType.INSIGHT: "💡 Insight: ",
    MemoryType.PATTERN: "🔁 Pattern: ",
    MemoryType.GAP: "⚠️ Gap: ",
    MemoryType.LEARNING: "📚 Learning: ",
    MemoryType.MASTERY: "✅ Mastery: ",
    MemoryType.STRUGGLE: "😓 Struggle: ",
    MemoryType.WRONG_ANSWER: "❌ Wrong answer: ",
    MemoryType.STRATEGY: "🎯 Strategy: ",
    MemoryType.PREFERENCE: "❤️ Preference: ",
    MemoryType.EMOTION: "💭 Emotion: ",
    MemoryType.PLAN_PERFORMANCE: "📊 Performance: ",
    MemoryType.REVIEW_PATTERN: "🔍 Review pattern: ",
}

_TOPIC_KO = re.compile(r"([가-힣]+)\s*(?:문제|단원|개념|공식|이론)")
_TOPIC_EN = re.compile(r"\b([A-Za-z][\w-]*)\s+(?:problems?|unit|concept|formula|theory)\b", re.I)
_HARDER = re.compile(r"어려|힘들|복잡|심화|\bhard\b|\bdifficult\b|\bcomplex\b|\badvanced\b", re.I)
_MUCH_HARDER = re.compile(r"매우\s*(?:어려|힘들)|\bvery\s+(?:hard|difficult)\b", re.I)
_EASIER = re.compile(r"쉬워|간단|기초|기본|\beasy\b|\bsimple\b|\bbasic\b", re.I)
_MUCH_EASIER = re.compile(r"매우\s*(?:쉬워|간단)|\bvery\s+(?:easy|simple)\b", re.I)


class LearningMemoryCatcher:
    """Extracts learning memories from a conversation.

    Only user messages are considered. Candidates under the minimum
    confidence are dropped.

    Example:
        catcher = LearningMemoryCatcher(min_confidence=0.6)
        memories = catcher.extract("student-1", request)
    """

    def __init__(self, min_confidence: float = 0.6) -> None:
        """Initialize catcher.

        Args:
            min_confidence: Memories below this confidence are discarded
        """
        self._min_confidence = min_confidence

    def extract(
        self,
        student_id: str,
        request: MemoryExtractionRequest,
        now: datetime | None = None,
    ) -> list[LearningMemory]:
        """Extract memories from the user messages of a conversation.

        Args:
            student_id: Owning student (part of the memory ID)
            request: Conversation slice with optional subject/emotion hints
            now: Creation time (default: now)

        Returns:
            Extracted memories in message order
        """
        created_at = now or dates.now()
        memories: list[LearningMemory] = []

        for message in request.messages:
            if message.role != "user":
                continue

            memory_type = self.detect_memory_type(message.content)
            if memory_type is None:
                continue

            confidence = self.calculate_confidence(message.content, memory_type)
            if confidence < self._min_confidence:
                continue

            subject = (
                self.detect_subject(message.content) or request.current_subject or Subject.GENERAL
            )
            emotion = (
                self.detect_emotion(message.content) or request.current_emotion or Emotion.NEUTRAL
            )
            memories.append(
                LearningMemory(
                    id=generate_memory_id(
                        student_id,
                        request.conversation_id,
                        message.content,
                        int(message.timestamp.timestamp()),
                    ),
                    type=memory_type,
                    subject=subject,
                    topic=self.extract_topic(message.content),
                    title=self.generate_title(message.content, memory_type),
                    content=message.content,
                    confidence=confidence,
                    difficulty=self.estimate_difficulty(message.content),
                    created_at=created_at,
                    last_recalled=created_at,
                    emotion_at_creation=emotion,
                    source_conversation_id=request.conversation_id,
                    tags=self.extract_tags(message.content),
                )
            )

        logger.debug(
            "memories_extracted",
            student_id=student_id,
            conversation_id=request.conversation_id,
            count=len(memories),
        )
        return memories

    def detect_memory_type(self, content: str) -> MemoryType | None:
        for memory_type, patterns in MEMORY_TYPE_PATTERNS.items():
            if any(pattern.search(content) for pattern in patterns):
                return memory_type
        return None

    def detect_subject(self, content: str) -> Subject | None:
        for subject, pattern in SUBJECT_PATTERNS.items():
            if pattern.search(content):
                return subject
        return None

    def detect_emotion(self, content: str) -> Emotion | None:
        for emotion, pattern in EMOTION_PATTERNS.items():
            if pattern.search(content):
                return emotion
        return None

    def calculate_confidence(self, content: str, memory_type: MemoryType) -> float:
        """0.6 base, +0.1 per matched pattern (max +0.2), +0.05 past 50 and 100 chars, cap 0.9."""
        matches = sum(1 for pattern in MEMORY_TYPE_PATTERNS[memory_type] if pattern.search(content))
        confidence = 0.6 + min(matches * 0.1, 0.2)
        if len(content) > 50:
            confidence += 0.05
        if len(content) > 100:
            confidence += 0.05
        return min(confidence, 0.9)

    def extract_topic(self, content: str) -> str:
        match = _TOPIC_KO.search(content) or _TOPIC_EN.search(content)
        return match.group(1).lower() if match else "general"

    def generate_title(self, content: str, memory_type: MemoryType) -> str:
        summary = content[:30] + ("..." if len(content) > 30 else "")
        return f"{TITLE_PREFIX[memory_type]}{summary}"

    def estimate_difficulty(self, content: str) -> int:
        difficulty = 3
        if _HARDER.search(content):
            difficulty += 1
        if _MUCH_HARDER.search(content):
            difficulty += 1
        if _EASIER.search(content):
            difficulty -= 1
        if _MUCH_EASIER.search(content):
            difficulty -= 1
        return max(1, min(5, difficulty))

    def extract_tags(self, content: str) -> list[str]:
        return [
            subject.value.lower()
            for subject, pattern in SUBJECT_PATTERNS.items()
            if pattern.search(content)
        ]
