# reference_data.py
"""Versioned, read-only vocabularies and tables used by the pipeline.

Everything here is an immutable tuple, frozenset or mapping proxy so it can
be shared across runs and threads without copying.
"""

from types import MappingProxyType

from .models import GeoScope, ModeProfile, RunMode

REFERENCE_DATA_VERSION = "2024.2"

# ==============================================================================
# Lexicons
# ==============================================================================

BUYING_SIGNAL_LEXICON = MappingProxyType({
    "ru": (
        "ищем", "ищу", "нужен", "нужна", "нужно", "требуется", "требуются",
        "закупка", "закупки", "тендер", "запрос предложений",
        "запрос котировок", "кто сделает", "кто может", "посоветуйте", "порекомендуйте",
        "вакансия", "объявляет конкурс", "прием заявок",
    ),
    "en": (
        "looking for", "seeking", "we need", "need a", "hiring",
        "request for proposal", "request for quotation", "rfp", "rfq",
        "tender", "procurement", "recommend a", "who can", "wanted",
        "vacancy", "call for bids",
    ),
})

EXPLICIT_INTENT_PHRASES = MappingProxyType({
    "ru": (
        "ищем", "ищу", "требуется", "требуются", "нужен подрядчик",
        "нужен исполнитель", "ищем подрядчика", "кто сделает", "тендер",
        "закупк", "прием заявок", "запрос котировок", "запрос предложений",
    ),
    "en": (
        "looking for", "seeking", "we are hiring", "request for proposal",
        "request for quotation", "invitation to tender", "call for bids",
        "rfp", "rfq",
    ),
})

VENDOR_PHRASES = MappingProxyType({
    "ru": (
        "предлагаем", "наши услуги", "мы оказываем", "оказываем услуги",
        "прайс", "цены на услуги", "закажите", "оставьте заявку",
        "бесплатная консультация", "наши клиенты", "портфолио",
        "мы предоставляем", "под ключ",
    ),
    "en": (
        "we offer", "our services", "we provide", "pricing", "get a quote",
        "book a demo", "free consultation", "our clients", "portfolio",
        "request a demo", "trusted by",
    ),
})

# Offer vocabulary pairs: English terms and their Russian counterparts. An
# offer worded in one language is also matched in the other through these.
OFFER_TERM_GLOSSARY = (
    (("accounting", "bookkeeping", "accountant"), ("бухгалтер", "бухгалтерия", "бухучет")),
    (("outsourcing", "outsource"), ("аутсорс", "аутсорсинг")),
    (("audit", "auditor"), ("аудит", "аудитор")),
    (("payroll",), ("расчет зарплаты", "зарплатный проект")),
    (("tax", "taxes"), ("налог", "налоговый")),
    (("legal", "lawyer", "law firm"), ("юрист", "юридические услуги")),
    (("marketing",), ("маркетинг",)),
    (("advertising", "ads"), ("реклама", "рекламное агентство")),
    (("seo",), ("продвижение сайта", "seo")),
    (("recruiting", "recruitment", "staffing"), ("подбор персонала", "рекрутинг")),
    (("cleaning",), ("клининг", "уборка")),
    (("logistics", "freight", "shipping"), ("логистика", "грузоперевозки", "доставка")),
    (("website", "web development"), ("разработка сайта", "создание сайта", "сайт")),
    (("software development", "development"), ("разработка", "разработка по")),
    (("mobile app",), ("мобильное приложение",)),
    (("design",), ("дизайн",)),
    (("translation", "translator"), ("перевод", "переводчик")),
    (("security",), ("охрана", "безопасность")),
    (("construction", "renovation"), ("строительство", "ремонт")),
    (("equipment",), ("оборудование",)),
    (("consulting",), ("консалтинг", "консультирование")),
    (("training",), ("обучение", "тренинг")),
    (("catering",), ("кейтеринг", "питание")),
    (("insurance",), ("страхование",)),
    (("crm",), ("crm", "внедрение crm")),
)

CONTACT_PHRASES = (
    "контакт", "телефон", "email", "e-mail", "почта", "напишите",
    "пишите в лс", "в личку", "звоните", "whatsapp", "telegram",
    "contact", "phone", "dm me", "reach out", "call us",
)

DEFAULT_NEGATIVE_LEXICON = MappingProxyType({
    "ru": ("реферат", "курсовая", "скачать бесплатно", "шаблон договора"),
    "en": ("free download", "template", "sample", "homework"),
})

# Added to negative keywords unless the run scans competitors.
VENDOR_NEGATIVE_KEYWORDS = (
    "агентство", "студия", "прайс", "портфолио", "наши услуги",
    "agency", "our services", "portfolio", "pricing",
)

NOISE_VOCABULARY = frozenset({
    "скачать", "бесплатно", "реферат", "википедия", "словарь", "перевод",
    "определение", "курсы", "обучение", "вебинар", "download", "wikipedia",
    "dictionary", "definition", "translation", "course", "webinar",
    "tutorial", "meaning",
})

# A noise token seen in this many candidates becomes a negative keyword.
NOISE_MIN_CANDIDATES = 3

# ==============================================================================
# ICP defaults
# ==============================================================================

DEFAULT_INDUSTRIES = MappingProxyType({
    "ru": (
        "производство", "оптовая торговля", "розничная торговля",
        "логистика", "строительство", "it", "услуги для бизнеса",
    ),
    "en": (
        "manufacturing", "wholesale", "retail", "logistics", "construction",
        "software", "professional services",
    ),
})

DEFAULT_ROLES = MappingProxyType({
    "ru": (
        "генеральный директор", "собственник бизнеса", "коммерческий директор",
        "финансовый директор", "руководитель отдела закупок",
    ),
    "en": ("ceo", "founder", "head of procurement", "cfo", "operations director"),
})

DEFAULT_COMPANY_SIZE = "smb"

COMPANY_SIZE_MARKERS = (
    ("enterprise", ("крупн", "холдинг", "корпорац", "enterprise", "large compan", "corporat")),
    ("smb", ("малый бизнес", "малого бизнеса", "средний бизнес", "мсп", "smb", "small business", "startup", "стартап")),
)

OFFER_STOPWORDS = frozenset({
    "мы", "наша", "наши", "компания", "компании", "занимаемся", "предлагаем",
    "оказываем", "услуги", "для", "ищем", "клиентов", "клиенты", "найти",
    "найди", "нужны", "нужно", "которым", "которые", "это", "как", "что",
    "our", "company", "we", "offer", "provide", "services", "for", "find",
    "looking", "clients", "customers", "who", "need", "the", "and", "with",
    "sell", "selling", "продаем", "продаём", "продажа",
})

# ==============================================================================
# Geo
# ==============================================================================

CIS_MARKERS = (
    "росси", "рф", "российская федерация", "москв", "санкт-петербург", "спб",
    "новосибирск", "екатеринбург", "казан", "снг", "казахстан", "алматы",
    "астан", "беларус", "минск", "узбекистан", "ташкент", "кыргызстан",
    "бишкек", "армени", "ереван", "азербайджан", "баку", "таджикистан",
    "душанбе", "молдов", "кишинев",
    "russia", "moscow", "saint petersburg", "kazakhstan", "almaty", "astana",
    "belarus", "minsk", "uzbekistan", "tashkent", "kyrgyzstan", "bishkek",
    "armenia", "yerevan", "azerbaijan", "baku", "tajikistan", "moldova", "cis",
)

CIS_TLDS = (
    ".ru", ".xn--p1ai", ".su", ".kz", ".by", ".uz", ".kg", ".am", ".az",
    ".tj", ".md",
)

GLOBAL_MARKERS = (
    "весь мир", "по всему миру", "глобальн", "международн", "worldwide",
    "global", "international",
)

# (tld, aliases) per country; aliases are matched as word prefixes.
COUNTRY_GROUPS = (
    (".ru", ("росси", "russia")),
    (".kz", ("казахстан", "kazakhstan")),
    (".by", ("беларус", "belarus")),
    (".uz", ("узбекистан", "uzbekistan")),
    (".de", ("германи", "germany", "deutschland")),
    (".pl", ("польш", "poland")),
    (".fr", ("франци", "france")),
    (".uk", ("великобритани", "united kingdom", "uk", "britain")),
    (".us", ("сша", "usa", "united states")),
    (".tr", ("турци", "turkey", "türkiye")),
    (".ae", ("оаэ", "uae", "emirates", "dubai", "дубай")),
    (".ge", ("грузия", "грузии", "georgia")),
    (".es", ("испани", "spain")),
    (".it", ("итали", "italy")),
    (".ca", ("канад", "canada")),
    (".in", ("индия", "индии", "india")),
    (".rs", ("серби", "serbia")),
    (".cy", ("кипр", "cyprus")),
)

CIS_COUNTRY_TLDS = frozenset({".ru", ".kz", ".by", ".uz"})

CIS_QUERY_CLAUSE = MappingProxyType({"ru": "Россия", "en": "CIS", "mixed": "Россия"})

# ==============================================================================
# URL filtering
# ==============================================================================

BLOCKED_DOMAINS = (
    "google.com", "google.ru", "bing.com", "duckduckgo.com", "ya.ru",
    "youtube.com", "wikipedia.org", "apps.apple.com", "play.google.com",
    "github.com", "pinterest.com", "tiktok.com",
)

BLOCKED_HOST_PREFIXES = ("support.", "help.", "docs.", "developer.", "developers.")

# (regex on the lowercased path, reject reason value)
BLOCKED_PATH_RULES = (
    (r"/(support|help|helpdesk|docs?|documentation|faq|kb|knowledge-base|manual)(/|$)", "blocked_docs_support"),
    (r"/(login|signin|sign-in|signup|sign-up|register|auth|account)(/|$)", "blocked_auth"),
    (r"/(privacy|privacy-policy|terms|cookies?|legal|policy|oferta)(/|$|\.)", "blocked_legal"),
    (r"\.(pdf|docx?|xlsx?|pptx?|zip|rar|jpe?g|png|gif|mp4|mp3)$", "blocked_media_file"),
)

# ==============================================================================
# Source kinds
# ==============================================================================

DICTIONARY_DOMAINS = (
    "dic.academic.ru", "gramota.ru", "wiktionary.org", "dictionary.cambridge.org",
    "merriam-webster.com", "dictionary.com", "thefreedictionary.com",
    "slovari.ru", "kartaslov.ru", "sinonim.org", "multitran.com", "reverso.net",
    "translate.google.com",
)
DICTIONARY_PATH_MARKERS = ("/dictionary/", "/slovar", "/definition/", "/dic/")
DICTIONARY_TITLE_MARKERS = (
    "что такое", "значение слова", "толковый словарь", "синонимы к слову",
    "definition of", "meaning of",
)

FORUM_DOMAINS = (
    "otvet.mail.ru", "thequestion.ru", "quora.com", "stackexchange.com",
    "stackoverflow.com", "answers.com", "forum.ixbt.com",
)
FORUM_PATH_MARKERS = (
    "/forum", "/forums/", "/questions/", "/question/", "/topic/", "/threads/",
    "/showthread",
)
FORUM_HOST_PREFIXES = ("forum.", "forums.", "community.")

ARTICLE_DOMAINS = (
    "habr.com", "vc.ru", "medium.com", "dzen.ru", "zen.yandex.ru", "pikabu.ru",
    "livejournal.com", "substack.com", "rbc.ru", "forbes.ru", "kommersant.ru",
    "techcrunch.com", "forbes.com", "klerk.ru", "buh.ru",
)
ARTICLE_PATH_MARKERS = (
    "/blog", "/news/", "/article", "/articles/", "/stati", "/statya",
    "/novosti", "/press/", "/journal/",
)
ARTICLE_HOST_PREFIXES = ("blog.", "news.", "journal.")

JOB_DOMAINS = (
    "hh.ru", "hh.kz", "superjob.ru", "rabota.ru", "zarplata.ru", "trudvsem.ru",
    "career.habr.com", "linkedin.com/jobs", "indeed.com", "glassdoor.com",
    "djinni.co", "work.ua", "rabota.by",
)
JOB_PATH_MARKERS = (
    "/vacancy", "/vacancies", "/jobs/", "/job/", "/careers", "/career/",
    "/vakansii",
)
JOB_TITLE_MARKERS = ("вакансия", "vacancy", "we are hiring", "job opening")

TENDER_DOMAINS = (
    "zakupki.gov.ru", "b2b-center.ru", "rts-tender.ru", "roseltorg.ru",
    "sberbank-ast.ru", "tender.pro", "tenderguru.ru", "fabrikant.ru",
    "goszakup.gov.kz", "icetrade.by", "sam.gov", "ted.europa.eu",
    "etp-ets.ru", "zakupki.mos.ru", "tektorg.ru", "bicotender.ru",
)
TENDER_PATH_MARKERS = ("/tender", "/zakupk", "/procurement", "/rfp", "/rfq")
TENDER_TITLE_MARKERS = (
    "тендер", "закупк", "запрос котировок", "запрос предложений",
    "request for proposal", "invitation to tender", "rfp", "rfq",
)

SOCIAL_DOMAINS = (
    "vk.com", "t.me", "telegram.me", "facebook.com", "twitter.com", "x.com",
    "linkedin.com/posts", "linkedin.com/feed", "reddit.com", "ok.ru",
    "instagram.com", "threads.net",
)

DIRECTORY_DOMAINS = (
    "2gis.ru", "yandex.ru/maps", "zoon.ru", "yell.ru", "spravker.ru",
    "rusprofile.ru", "list-org.com", "checko.ru", "clutch.co", "yelp.com",
    "yellowpages.com", "europages.com", "kompass.com", "crunchbase.com",
    "g2.com", "capterra.com", "orgpage.ru", "flamp.ru",
)
DIRECTORY_PATH_MARKERS = ("/catalog/", "/companies/", "/firms/", "/directory/", "/rating", "/top-")
DIRECTORY_TITLE_MARKERS = ("каталог компаний", "рейтинг компаний", "список компаний", "top 10", "best companies")

COMPANY_PATH_MARKERS = (
    "/about", "/o-kompanii", "/o-nas", "/company", "/contacts", "/kontakty",
    "/services", "/uslugi", "/team",
)

# Platforms never treated as a single company's own site.
PLATFORM_DOMAINS = (
    DICTIONARY_DOMAINS + FORUM_DOMAINS + ARTICLE_DOMAINS + JOB_DOMAINS
    + TENDER_DOMAINS + SOCIAL_DOMAINS + DIRECTORY_DOMAINS
)

# Company pages are Hot-eligible on an own domain in one of these zones.
HOT_ELIGIBLE_DOMAINS = (
    "ru", "xn--p1ai", "su", "by", "kz", "uz", "kg", "am", "az", "ge", "md",
    "com", "net", "org", "biz", "pro", "io", "co", "de", "eu", "uk",
)

# Site builders and free hosting: a subdomain there is not a company domain.
HOT_INELIGIBLE_HOSTS = (
    "tilda.ws", "wixsite.com", "ucoz.ru", "ucoz.net", "narod.ru", "nethouse.ru",
    "blogspot.com", "wordpress.com", "github.io", "business.site", "taplink.cc",
    "jimdofree.com", "webflow.io",
)

# ==============================================================================
# Search plan templates
# ==============================================================================

SOLUTION_SUFFIXES = MappingProxyType({"ru": ("", "подрядчик"), "en": ("", "provider")})

# (template name, pattern); {signal} and {term} are substituted.
SOURCE_TEMPLATES = MappingProxyType({
    "ru": (
        ("job", "site:hh.ru {term}"),
        ("tender", "site:zakupki.gov.ru {term}"),
        ("tender", "{term} тендер"),
        ("community", "site:vk.com {signal} {term}"),
        ("community", "site:t.me {signal} {term}"),
    ),
    "en": (
        ("job", "site:linkedin.com/jobs {term}"),
        ("tender", '{term} "request for proposal"'),
        ("tender", "{term} tender"),
        ("community", "site:reddit.com {signal} {term}"),
    ),
})

COMPETITOR_TEMPLATES = MappingProxyType({
    "ru": (
        ("competitor", "{term} компания услуги"),
        ("competitor", "{term} агентство"),
        ("competitor", "{term} рейтинг компаний"),
    ),
    "en": (
        ("competitor", "{term} company"),
        ("competitor", "{term} agency"),
        ("competitor", "top {term} providers"),
    ),
})

GENERIC_QUALIFIERS = MappingProxyType({
    "ru": (
        "ищем", "требуется", "нужен", "закупка", "тендер", "заявка", "запрос",
        "подрядчик", "исполнитель", "поставщик", "вакансия", "услуги", "цена",
        "заказ",
    ),
    "en": (
        "looking for", "hiring", "need", "tender", "procurement", "request",
        "contractor", "vendor", "supplier", "vacancy", "services", "pricing",
        "quote", "rfp",
    ),
})

MAX_QUERY_LENGTH = 200
PLAN_MIN_QUERY_CEILING = 14

# ==============================================================================
# Modes
# ==============================================================================

MODE_PROFILES = MappingProxyType({
    RunMode.QUICK: ModeProfile(
        search_timeout=8.0,
        intent_timeout=12.0,
        llm_batch_timeout=15.0,
        fetch_timeout=8.0,
        max_web_requests=8,
        fetch_budget=3,
        results_per_query=5,
        min_query_count=4,
        max_query_count=12,
        target_count=15,
    ),
    RunMode.DEEP: ModeProfile(
        search_timeout=22.0,
        intent_timeout=20.0,
        llm_batch_timeout=30.0,
        fetch_timeout=15.0,
        max_web_requests=24,
        fetch_budget=10,
        results_per_query=10,
        min_query_count=8,
        max_query_count=30,
        target_count=40,
    ),
    RunMode.CONTINUE: ModeProfile(
        search_timeout=15.0,
        intent_timeout=16.0,
        llm_batch_timeout=25.0,
        fetch_timeout=12.0,
        max_web_requests=16,
        fetch_budget=6,
        results_per_query=8,
        min_query_count=6,
        max_query_count=20,
        target_count=30,
    ),
    RunMode.REFRESH: ModeProfile(
        search_timeout=15.0,
        intent_timeout=16.0,
        llm_batch_timeout=25.0,
        fetch_timeout=12.0,
        max_web_requests=16,
        fetch_budget=6,
        results_per_query=8,
        min_query_count=6,
        max_query_count=20,
        target_count=30,
    ),
})

# Search stops early once this many candidates per requested lead exist.
CANDIDATE_POOL_FACTOR = 3

REJECTED_SAMPLE_SIZE = 20
MAX_PROOF_SNIPPET = 160
MAX_FALLBACK_SUGGESTIONS = 5

DEFAULT_GEO_SCOPE_BY_LANGUAGE = MappingProxyType({
    "ru": GeoScope.CIS,
    "en": GeoScope.GLOBAL,
    "mixed": GeoScope.CIS,
})
