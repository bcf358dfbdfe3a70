"""Intent classification service for questy_coach.

This module routes a free-text request to a handler using keyword
patterns (Korean and English) and estimates how complex the request is
so a model tier can be chosen.
"""

import re

from questy_coach.config import RouterSettings
from questy_coach.logging import get_logger
from questy_coach.models.routing import HandlerRole, IntentCategory, ModelTier, RouteDecision

__all__ = [
    "COMPLEXITY_KEYWORDS",
    "INTENT_PATTERNS",
    "INTENT_TO_HANDLER",
    "IntentClassifier",
]

logger = get_logger(__name__)

# Ordered: on equal match counts the earlier intent wins
INTENT_PATTERNS: list[tuple[IntentCategory, list[re.Pattern[str]]]] = [
    (
        IntentCategory.ENROLLMENT,
        [
            re.compile(r"등록|가입|신청|시작하고|새로|처음|\benroll|\bsign\s*up\b|\bregister", re.I),
            re.compile(
                r"어떻게.*시작|어디서.*시작|how\s+(?:do|can)\s+i\s+(?:start|begin)"
                r"|where\s+(?:do|should)\s+i\s+(?:start|begin)",
                re.I,
            ),
        ],
    ),
    (
        IntentCategory.STUDY_PLAN,
        [
            re.compile(r"계획|스케줄|일정|커리큘럼|로드맵|\bplan\b|\bschedule\b|curriculum|roadmap", re.I),
            re.compile(
                r"뭐.*공부|어떤.*순서|얼마나.*걸려|what\s+(?:should|to)\s+i?\s*study"
                r"|in\s+what\s+order|how\s+long\s+will",
                re.I,
            ),
        ],
    ),
    (
        IntentCategory.QUESTION,
        [
            re.compile(r"뭐야|무엇|어떻게|왜|설명|알려|\bwhat\s+is\b|\bwhy\b|\bexplain\b|\bhow\s+does\b", re.I),
            re.compile(
                r"이해.*안|모르겠|헷갈|문제.*풀어|don'?t\s+understand|\bconfus|\bsolve\b",
                re.I,
            ),
        ],
    ),
    (
        IntentCategory.PROGRESS,
        [
            re.compile(r"진도|진행|얼마나|어디까지|완료|끝났|\bprogress\b|\bhow\s+far\b|\bfinished\b", re.I),
            re.compile(r"지금.*상태|현재.*위치|current\s+(?:status|position)|where\s+am\s+i", re.I),
        ],
    ),
    (
        IntentCategory.MOTIVATION,
        [
            re.compile(
                r"자신.*없|할수.*있을까|포기|힘들|어려|give\s+up|\bcan\s+i\s+do\b|\bhard\b|difficult",
                re.I,
            ),
            re.compile(r"동기|의욕|응원|격려|힘내|motivat|encourag|cheer", re.I),
        ],
    ),
    (
        IntentCategory.EMOTIONAL,
        [
            re.compile(r"기분|느낌|스트레스|불안|걱정|우울|\bfeel|stress|anxious|worr|depress", re.I),
            re.compile(r"피곤|지쳐|싫어|귀찮|\btired\b|exhausted|\bhate\b|\bbored\b", re.I),
        ],
    ),
    (
        IntentCategory.FEEDBACK,
        [
            re.compile(r"피드백|리뷰|평가|채점|맞았|틀렸|feedback|\breview\b|\bgrade|\bwrong\b", re.I),
            re.compile(r"어땠|잘했|못했|개선|how\s+did\s+i\s+do|\bimprove", re.I),
        ],
    ),
    (
        IntentCategory.ADMIN,
        [
            re.compile(r"설정|변경|수정|삭제|취소|환불|settings?\b|\bdelete\b|\bcancel|\brefund", re.I),
            re.compile(r"비밀번호|계정|프로필|password|\baccount\b|\bprofile\b", re.I),
        ],
    ),
    (
        IntentCategory.SCHEDULE_CHANGE,
        [
            re.compile(
                r"미뤄|미루|연기|바빠서|뒤로|postpone|reschedule|push\s+back|\bbusy\b"
                r"|can'?t\s+study|cannot\s+study",
                re.I,
            ),
            re.compile(
                r"여행|시험\s*기간|아파서|쉬고\s*싶|vacation|\btrip\b|\bsick\b"
                r"|take\s+(?:a\s+few\s+)?days?\s+off",
                re.I,
            ),
        ],
    ),
    (
        IntentCategory.SCHEDULE_REMINDER,
        [
            re.compile(r"알림|리마인드|깨워|remind|notif|\balarm\b", re.I),
            re.compile(r"몇\s*시|언제.*공부|what\s+time|when\s+should\s+i\s+study", re.I),
        ],
    ),
]

INTENT_TO_HANDLER: dict[IntentCategory, HandlerRole] = {
    IntentCategory.ENROLLMENT: HandlerRole.ADMISSION,
    IntentCategory.STUDY_PLAN: HandlerRole.PLANNER,
    IntentCategory.QUESTION: HandlerRole.COACH,
    IntentCategory.PROGRESS: HandlerRole.ANALYST,
    IntentCategory.MOTIVATION: HandlerRole.COACH,
    IntentCategory.EMOTIONAL: HandlerRole.COACH,
    IntentCategory.FEEDBACK: HandlerRole.ANALYST,
    IntentCategory.ADMIN: HandlerRole.DIRECTOR,
    IntentCategory.SCHEDULE_CHANGE: HandlerRole.PLANNER,
    IntentCategory.SCHEDULE_REMINDER: HandlerRole.COACH,
}

COMPLEXITY_KEYWORDS: dict[str, float] = {
    # high
    "구현": 0.35,
    "implement": 0.35,
    "설계": 0.35,
    "분석": 0.30,
    "analyze": 0.30,
    "최적화": 0.30,
    "아키텍처": 0.40,
    "architecture": 0.40,
    "종합": 0.30,
    "비교": 0.25,
    "compare": 0.25,
    # medium
    "만들어": 0.20,
    "create": 0.20,
    "설명": 0.15,
    "explain": 0.15,
    "왜": 0.20,
    "why": 0.20,
    "어떻게": 0.20,
    "how": 0.20,
    # low
    "안녕": 0.05,
    "hello": 0.05,
    "뭐야": 0.10,
    "what": 0.10,
    "네": 0.05,
    "아니": 0.05,
}

_MULTIMODAL = re.compile(
    r"이미지|사진|그림|스크린샷|pdf|파일|image|photo|picture|screenshot|\bfile\b|attachment"
)


class IntentClassifier:
    """Keyword-based intent router.

    Stateless and synchronous: the same text always yields the same
    decision.

    Example:
        classifier = IntentClassifier()
        decision = classifier.classify("Can you explain derivatives?")
        decision.target_handler  # HandlerRole.COACH
    """

    def __init__(self, settings: RouterSettings | None = None) -> None:
        """Initialize classifier.

        Args:
            settings: Router thresholds and tier model names
        """
        self._settings = settings or RouterSettings()

    def classify(self, text: str) -> RouteDecision:
        """Classify a request and decide which handler answers it."""
        intent, matches = self.detect_intent(text)
        complexity = self.calculate_complexity(text)
        handler = INTENT_TO_HANDLER[intent]
        confidence = min(0.95, 0.5 + 0.15 * matches + (0.1 if len(text) > 20 else 0.0))

        decision = RouteDecision(
            target_handler=handler,
            intent=intent,
            confidence=confidence,
            reasoning=self._reasoning(intent, complexity, handler),
            complexity=complexity,
            model_tier=self.select_model(complexity),
            has_multimodal_content=self.has_multimodal_content(text),
        )
        logger.debug(
            "intent_classified",
            intent=str(intent),
            handler=str(handler),
            confidence=confidence,
            complexity=complexity,
        )
        return decision

    def detect_intent(self, text: str) -> tuple[IntentCategory, int]:
        """Return the best-matching intent and its number of matched patterns.

        Defaults to QUESTION with zero matches.
        """
        best = IntentCategory.QUESTION
        best_score = 0
        for intent, patterns in INTENT_PATTERNS:
            score = sum(1 for pattern in patterns if pattern.search(text))
            if score > best_score:
                best, best_score = intent, score
        return best, best_score

    def calculate_complexity(self, text: str) -> float:
        """Estimate request complexity in [0, 1] from keywords, length and questions."""
        lowered = text.lower()
        complexity = sum(weight for kw, weight in COMPLEXITY_KEYWORDS.items() if kw in lowered)
        if len(text) > 100:
            complexity += 0.1
        if len(text) > 200:
            complexity += 0.1
        complexity += text.count("?") * 0.05
        return min(1.0, complexity)

    def select_model(self, complexity: float) -> ModelTier:
        if complexity < self._settings.simple_threshold:
            return ModelTier.FAST
        if complexity < self._settings.complex_threshold:
            return ModelTier.BALANCED
        return ModelTier.DEEP

    def model_for_tier(self, tier: ModelTier) -> str:
        """Map a tier to the configured model name."""
        return {
            ModelTier.FAST: self._settings.fast_model,
            ModelTier.BALANCED: self._settings.balanced_model,
            ModelTier.DEEP: self._settings.deep_model,
        }[tier]

    def has_multimodal_content(self, text: str) -> bool:
        """Whether the request mentions images, photos, screenshots or files."""
        return bool(_MULTIMODAL.search(text.lower()))

    def _reasoning(self, intent: IntentCategory, complexity: float, handler: HandlerRole) -> str:
        if complexity < self._settings.simple_threshold:
            level = "Simple"
        elif complexity < self._settings.complex_threshold:
            level = "Medium"
        else:
            level = "Complex"
        return (
            f"Intent: {intent}, Complexity: {level} ({complexity * 100:.0f}%), Handler: {handler}"
        )
