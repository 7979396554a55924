"""
Static game catalogs

Stage/level layouts for the built-in games plus the Luganda vocabulary
they teach. Models are frozen, so the module-level catalogs can be shared
between children without copying.
"""
import random
import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from progress_service.schemas import Level, Stage
from progress_service.schemas_events import COUNTING_GAME, LUGANDA_LEARNING_GAME, WORD_GAME

logger = logging.getLogger(__name__)


class WordItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    luganda: str
    english: str
    example: str = ""
    example_translation: str = ""


class CountingStageConfig(BaseModel):
    """Number range and presentation of one counting stage"""
    model_config = ConfigDict(frozen=True)

    stage_id: int
    numbers_min: int
    numbers_max: int
    use_bunches: bool = False
    items_per_bunch: Optional[int] = None
    uses_currency: bool = False


class GameCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_key: str
    storage_prefix: str
    stages: Tuple[Stage, ...]
    points_per_level: Optional[int] = None  # fixed award per completion, overrides the reported score

    def storage_key(self, child_id: str) -> str:
        return f"{self.storage_prefix}:{child_id}"


# ============================================================================
# Luganda learning game
# ============================================================================

def _w(luganda: str, english: str, example: str, example_translation: str) -> WordItem:
    return WordItem(luganda=luganda, english=english, example=example, example_translation=example_translation)


LUGANDA_WORDS: Dict[int, Tuple[WordItem, ...]] = {
    1: (
        _w('Oli otya', 'How are you', 'Oli otya leero?', 'How are you today?'),
        _w('Bulungi', 'Good/Fine', 'Ndi bulungi, webale.', "I'm fine, thank you."),
        _w('Webale', 'Thank you', 'Webale nnyo!', 'Thank you very much!'),
        _w('Ssebo', 'Sir', 'Ssebo, nnyamba.', 'Sir, help me.'),
    ),
    2: (
        _w('Omukazi', 'Woman', 'Omukazi oyo mulungi nnyo.', 'That woman is very beautiful.'),
        _w('Omusajja', 'Man', 'Omusajja oyo mugumikiriza.', 'That man is patient.'),
        _w('Omwana', 'Child', 'Omwana oyo musanyufu nnyo.', 'That child is very happy.'),
        _w('Abawala', 'Girls', 'Abawala bali basoma.', 'Those girls are studying.'),
    ),
    3: (
        _w('Amazzi', 'Water', 'Amazzi gano mangi.', 'This water is plenty.'),
        _w('Emmere', 'Food', 'Emmere eno nnungi.', 'This food is good.'),
        _w('Ennyumba', 'House', 'Ennyumba yange nnungi.', 'My house is nice.'),
        _w('Ekitabo', 'Book', 'Ekitabo kino kirungi.', 'This book is good.'),
    ),
    4: (
        _w('Ekibuga', 'City', 'Ekibuga kya Kampala kinene.', 'Kampala city is big.'),
        _w('Ekyalo', 'Village', 'Ekyalo kyange kirungi.', 'My village is nice.'),
        _w('Essomero', 'School', 'Essomero lino linene.', 'This school is big.'),
        _w('Eddwaliro', 'Hospital', 'Eddwaliro lisangibwa ku kasozi.', 'The hospital is on the hill.'),
    ),
    5: (
        _w('Okukyala', 'To visit', 'Njagala okukyala mu kyalo kyange.', 'I want to visit my village.'),
        _w('Okuyiga', 'To learn', 'Njagala okuyiga Oluganda.', 'I want to learn Luganda.'),
        _w('Okulya', 'To eat', 'Tujja kulya emmere.', 'We will eat food.'),
        _w('Okunywa', 'To drink', 'Njagala okunywa amazzi.', 'I want to drink water.'),
    ),
    6: (
        _w('Bulungi', 'Good', 'Kirungi nnyo.', 'It is very good.'),
        _w('Bubi', 'Bad', 'Embeera mbi.', 'The situation is bad.'),
        _w('Kinene', 'Big', 'Ennyumba nnene.', 'The house is big.'),
        _w('Kitono', 'Small', 'Akatunda katono.', 'The fruit is small.'),
    ),
    7: (
        _w('Eggulu', 'Sky', 'Eggulu lino bbululu.', 'The sky is blue.'),
        _w('Emmunyeenye', 'Star', 'Emmunyeenye nyingi ziri mu ggulu.', 'There are many stars in the sky.'),
        _w('Omusana', 'Sun', 'Omusana gwaka nnyo leero.', 'The sun is shining a lot today.'),
        _w('Omwezi', 'Moon', 'Omwezi gwaka ekiro.', 'The moon shines at night.'),
    ),
    8: (
        _w('Olukalu', 'Land', 'Olukalu luno lugimu.', 'This land is fertile.'),
        _w('Ekibira', 'Forest', 'Ekibira kino kinene.', 'This forest is big.'),
        _w('Enyanja', 'Lake', 'Enyanja Victoria nnene.', 'Lake Victoria is big.'),
        _w('Olusozi', 'Mountain', 'Olusozi luno luwanvu.', 'This mountain is tall.'),
    ),
    9: (
        _w('Leero', 'Today', 'Leero nnagenda mu kibuga.', 'Today I went to town.'),
        _w('Enkya', 'Tomorrow', 'Enkya tugenda mu ssomero.', 'Tomorrow we go to school.'),
        _w('Jjo', 'Yesterday', 'Jjo twalabye film.', 'Yesterday we watched a film.'),
        _w('Essawa', 'Hour/Time', 'Essawa mmeka?', 'What time is it?'),
    ),
    10: (
        _w('Nsanyuse okukulaba', 'Nice to meet you', 'Nsanyuse okukulaba nate.', 'Nice to see you again.'),
        _w('Tewali mutawaana', 'No problem', 'Tewali mutawaana, nsobola okukuyamba.', 'No problem, I can help you.'),
        _w('Nkwagala', 'I love you', 'Nkwagala nnyo.', 'I love you very much.'),
        _w('Simanyi', "I don't know", 'Simanyi luganda lungi.', "I don't know Luganda well."),
    ),
}

# (stage id, title, description, required score, ((level id, level title), ...))
_LUGANDA_LAYOUT = (
    (1, "Beginner", "Learn basic Luganda words and phrases", 0, ((1, "Greetings"), (2, "People"))),
    (2, "Elementary", "Basic objects and everyday items", 100, ((3, "Objects"), (4, "Places"))),
    (3, "Intermediate", "Actions and descriptions", 200, ((5, "Verbs"), (6, "Adjectives"))),
    (4, "Advanced", "Nature and environment", 300, ((7, "Nature"), (8, "Environment"))),
    (5, "Expert", "Complex concepts and expressions", 400, ((9, "Time Expressions"), (10, "Expressions"))),
)

LUGANDA_STAGES: Tuple[Stage, ...] = tuple(
    Stage(
        id=stage_id,
        title=title,
        description=description,
        required_score=required_score,
        is_locked=stage_id != 1,
        levels=tuple(
            Level(
                id=level_id,
                title=level_title,
                is_locked=not (stage_id == 1 and index == 0),
                word_count=len(LUGANDA_WORDS[level_id]),
            )
            for index, (level_id, level_title) in enumerate(levels)
        ),
    )
    for stage_id, title, description, required_score, levels in _LUGANDA_LAYOUT
)


def get_words_for_level(level_id: int) -> List[WordItem]:
    return list(LUGANDA_WORDS.get(level_id, ()))


def get_all_words() -> List[WordItem]:
    return [word for level_id in sorted(LUGANDA_WORDS) for word in LUGANDA_WORDS[level_id]]


# ============================================================================
# Counting game
# ============================================================================

LUGANDA_NUMBERS: Dict[int, str] = {
    1: 'Emu', 2: 'Bbiri', 3: 'Ssatu', 4: 'Nnya', 5: 'Ttaano',
    6: 'Mukaaga', 7: 'Musanvu', 8: 'Munaana', 9: 'Mwenda', 10: 'Kkumi',
    20: 'Abiri', 21: 'Abiri mu emu', 22: 'Abiri mu bbiri', 25: 'Abiri mu ttaano',
    30: 'Asatu', 33: 'Asatu mu ssatu', 40: 'Ana', 44: 'Ana mu nnya', 50: 'Ataano',
    60: 'Nkaaga', 70: 'Nsanvu', 75: 'Nsanvu mu ttaano', 80: 'Kinaana',
    90: 'Kyenda', 99: 'Kyenda mu mwenda', 100: 'Kikumi',
    200: 'Bibiri', 300: 'Bisatu', 400: 'Bina', 500: 'Bitaano',
    600: 'Lukaaga', 700: 'Lusanvu', 800: 'Lunaana', 900: 'Lwenda', 1000: 'Lukumi',
}

# Ugandan shilling denominations -> Luganda name
UGANDAN_CURRENCY: Dict[int, str] = {
    500: 'Bitaano',
    1000: 'Lukumi',
    2000: 'Enkumi Bbiri',
    5000: 'Enkumi Ttaano',
    10000: 'Enkumi Kkumi',
    20000: 'Enkumi Abiri',
    50000: 'Enkumi Ataano',
}

CURRENCY_STAGE_ID = 4

COUNTING_STAGE_CONFIGS: Dict[int, CountingStageConfig] = {
    1: CountingStageConfig(stage_id=1, numbers_min=1, numbers_max=10),
    2: CountingStageConfig(stage_id=2, numbers_min=10, numbers_max=50, use_bunches=True, items_per_bunch=10),
    3: CountingStageConfig(stage_id=3, numbers_min=50, numbers_max=100, use_bunches=True, items_per_bunch=25),
    4: CountingStageConfig(stage_id=4, numbers_min=500, numbers_max=50000, uses_currency=True),
}

# (stage id, title, description, number of levels)
_COUNTING_LAYOUT = (
    (1, "Basic Counting (1-10)", "Learn to count individual items from 1 to 10 in Luganda", 5),
    (2, "Counting in Groups (10-50)", "Learn to count items in groups from 10 to 50", 4),
    (3, "Advanced Counting (50-100)", "Learn to count larger numbers from 50 to 100", 4),
    (4, "Ugandan Currency", "Learn to identify and count Ugandan Shillings", 5),
)


def _counting_stages() -> Tuple[Stage, ...]:
    stages = []
    next_level_id = 1
    for stage_id, title, description, level_count in _COUNTING_LAYOUT:
        levels = []
        for index in range(level_count):
            levels.append(Level(
                id=next_level_id,
                title=f"Level {index + 1}",
                is_locked=not (stage_id == 1 and index == 0),
                word_count=1,
            ))
            next_level_id += 1
        # Completing a stage is enough to open the next one
        stages.append(Stage(
            id=stage_id,
            title=title,
            description=description,
            required_score=0,
            is_locked=stage_id != 1,
            levels=tuple(levels),
        ))
    return tuple(stages)


COUNTING_GAME_STAGES: Tuple[Stage, ...] = _counting_stages()


def luganda_word_for_number(number: int, stage_id: int) -> str:
    """
    Luganda word for a number as taught in the given stage.

    Currency values win in the currency stage; 11-19 are built as
    "Kkumi na <ones>"; anything else unknown falls back to the numeral.
    """
    if stage_id == CURRENCY_STAGE_ID and number in UGANDAN_CURRENCY:
        return UGANDAN_CURRENCY[number]

    if number in LUGANDA_NUMBERS:
        return LUGANDA_NUMBERS[number]

    if 10 < number < 20:
        ones = luganda_word_for_number(number - 10, stage_id)
        return f"Kkumi na {ones.lower()}"

    return str(number)


def numbers_for_stage(stage_id: int, rng: Optional[random.Random] = None) -> List[int]:
    """Pick one target number per level of a counting stage"""
    rng = rng or random.Random()
    config = COUNTING_STAGE_CONFIGS.get(stage_id)
    stage = next((s for s in COUNTING_GAME_STAGES if s.id == stage_id), None)
    if config is None or stage is None:
        logger.warning(f"Unknown counting stage {stage_id}, using default numbers")
        return [1, 2, 3, 4, 5]

    level_count = len(stage.levels)

    if config.uses_currency:
        values = list(UGANDAN_CURRENCY)
        rng.shuffle(values)
        return values[:level_count]

    if config.use_bunches and config.items_per_bunch:
        candidates = list(range(config.numbers_min, config.numbers_max + 1, config.items_per_bunch))
        rng.shuffle(candidates)
        return candidates[:level_count]

    population = range(config.numbers_min, config.numbers_max + 1)
    return rng.sample(population, min(level_count, len(population)))


def target_number_for_level(stage_id: int, level_number: int, numbers: List[int]) -> int:
    """
    Target number of a 1-based level; out-of-range levels get the stage minimum
    so partial save data never breaks a game.
    """
    index = level_number - 1
    if 0 <= index < len(numbers):
        return numbers[index]

    config = COUNTING_STAGE_CONFIGS.get(stage_id) or COUNTING_STAGE_CONFIGS[1]
    logger.warning(
        f"Level {level_number} out of range for stage {stage_id} "
        f"({len(numbers)} numbers), using {config.numbers_min}"
    )
    return config.numbers_min


# ============================================================================
# Word game
# ============================================================================

class WordGameLevel(BaseModel):
    """One word to guess from a clue, first letter shown"""
    model_config = ConfigDict(frozen=True)

    word: str
    question: str
    first_letter: Optional[str] = None

    @property
    def visible_letter(self) -> str:
        return self.first_letter or self.word[0]


WORD_GAME_LEVELS: Tuple[WordGameLevel, ...] = (
    WordGameLevel(word="KANZU", question="Traditional attire in Buganda culture"),
    WordGameLevel(word="SAFARI", question="Journey to observe wildlife in their natural habitat"),
    WordGameLevel(word="BAOBAB", question="Iconic African tree with a thick trunk"),
    WordGameLevel(word="UBUNTU", question="African philosophy meaning 'I am because we are'"),
    WordGameLevel(word="MAASAI", question="Indigenous ethnic group in Kenya and Tanzania"),
    WordGameLevel(word="SERENGETI", question="Famous ecosystem in Tanzania known for migration"),
    WordGameLevel(word="NYAMA", question="Swahili word for meat"),
    WordGameLevel(word="DJEMBE", question="West African drum played with bare hands"),
    WordGameLevel(word="KENTE", question="Colorful textile from Ghana"),
    WordGameLevel(word="MANDELA", question="South African anti-apartheid revolutionary and president"),
)

WORD_GAME_POINTS_PER_LEVEL = 10

# One stage; level ids are 1-based positions in WORD_GAME_LEVELS
WORD_GAME_STAGES: Tuple[Stage, ...] = (
    Stage(
        id=1,
        title="African Words",
        description="Guess the word from its clue",
        required_score=0,
        is_locked=False,
        levels=tuple(
            Level(id=index + 1, title=level.word.title(), is_locked=index != 0, word_count=1)
            for index, level in enumerate(WORD_GAME_LEVELS)
        ),
    ),
)


def get_word_game_level(level_id: int) -> Optional[WordGameLevel]:
    if 1 <= level_id <= len(WORD_GAME_LEVELS):
        return WORD_GAME_LEVELS[level_id - 1]
    return None


# ============================================================================
# Registry
# ============================================================================

GAME_CATALOGS: Dict[str, GameCatalog] = {
    LUGANDA_LEARNING_GAME: GameCatalog(
        game_key=LUGANDA_LEARNING_GAME,
        storage_prefix="luganda_learning",
        stages=LUGANDA_STAGES,
    ),
    COUNTING_GAME: GameCatalog(
        game_key=COUNTING_GAME,
        storage_prefix="counting_game",
        stages=COUNTING_GAME_STAGES,
    ),
    WORD_GAME: GameCatalog(
        game_key=WORD_GAME,
        storage_prefix="WordGame",
        stages=WORD_GAME_STAGES,
        points_per_level=WORD_GAME_POINTS_PER_LEVEL,
    ),
}


def get_game_catalog(game_key: str) -> GameCatalog:
    """Raises KeyError for a game without a catalog"""
    return GAME_CATALOGS[game_key]
