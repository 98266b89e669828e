"""Static lookup tables for fallback study resources, topic tiers, and documentation links.

The catalog is an immutable value so callers (and tests) can inject their own
tables; :func:`default_catalog` returns the shared built-in instance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote_plus

from .models import LEVELS, Resource

VIDEO_SEARCH_BASE = "https://www.youtube.com/results?search_query="
WEB_SEARCH_BASE = "https://www.google.com/search?q="
DEFAULT_DOCUMENTATION_URL = "https://developer.mozilla.org/en-US/docs/Web"


@dataclass(frozen=True)
class ResourceRule:
    keywords: Tuple[str, ...]
    resources: Tuple[Resource, ...]


@dataclass(frozen=True)
class TopicFamily:
    keywords: Tuple[str, ...]
    tiers: Mapping[str, Tuple[str, ...]]


@dataclass(frozen=True)
class DocumentationEntry:
    keyword: str
    base: str
    topics: Tuple[Tuple[str, str], ...] = ()


def _r(title: str, url: str, kind: str) -> Resource:
    return Resource(title=title, url=url, type=kind)


_CRASH_COURSE = ("CrashCourse", "https://www.youtube.com/@crashcourse", "video")

SUBJECT_RESOURCES: Tuple[ResourceRule, ...] = (
    ResourceRule(
        ("math", "calculus", "algebra", "geometry", "statistics"),
        (
            _r("Khan Academy – Math", "https://www.khanacademy.org/math", "course"),
            _r("3Blue1Brown", "https://www.youtube.com/@3blue1brown", "video"),
            _r("Paul's Online Math Notes", "https://tutorial.math.lamar.edu/", "article"),
            _r("MIT OCW", "https://www.youtube.com/@mitocw", "video"),
        ),
    ),
    ResourceRule(
        ("physics",),
        (
            _r("Khan Academy – Physics", "https://www.khanacademy.org/science/physics", "course"),
            _r("The Physics Classroom", "https://www.physicsclassroom.com/", "article"),
            _r("Physics Videos", "https://www.youtube.com/results?search_query=physics+lectures", "video"),
            _r(*_CRASH_COURSE),
        ),
    ),
    ResourceRule(
        ("chemistry",),
        (
            _r("Khan Academy – Chemistry", "https://www.khanacademy.org/science/chemistry", "course"),
            _r("Professor Dave Explains", "https://www.youtube.com/@ProfessorDaveExplains", "video"),
            _r("LibreTexts Chemistry", "https://chem.libretexts.org/", "article"),
            _r(*_CRASH_COURSE),
        ),
    ),
    ResourceRule(
        ("biology",),
        (
            _r("Khan Academy – Biology", "https://www.khanacademy.org/science/biology", "course"),
            _r("Amoeba Sisters", "https://www.youtube.com/@AmoebaSisters", "video"),
            _r("LibreTexts Biology", "https://bio.libretexts.org/", "article"),
            _r(*_CRASH_COURSE),
        ),
    ),
    ResourceRule(
        ("python",),
        (
            _r("Python Official Docs", "https://docs.python.org/3/", "article"),
            _r(
                "freeCodeCamp – Python",
                "https://www.freecodecamp.org/learn/scientific-computing-with-python/",
                "course",
            ),
            _r("Corey Schafer", "https://www.youtube.com/@coreyms", "video"),
            _r("Programming with Mosh", "https://www.youtube.com/@programmingwithmosh", "video"),
        ),
    ),
    ResourceRule(
        ("javascript", "typescript"),
        (
            _r("MDN Web Docs", "https://developer.mozilla.org/en-US/docs/Web/JavaScript", "article"),
            _r(
                "freeCodeCamp – JavaScript",
                "https://www.freecodecamp.org/learn/javascript-algorithms-and-data-structures-v8/",
                "course",
            ),
            _r("Traversy Media", "https://www.youtube.com/@TraversyMedia", "video"),
            _r("Fireship", "https://www.youtube.com/@Fireship", "video"),
        ),
    ),
    ResourceRule(
        ("programming", "computer", "coding", "java", "c++", "c#"),
        (
            _r("freeCodeCamp", "https://www.freecodecamp.org/", "course"),
            _r("GeeksforGeeks", "https://www.geeksforgeeks.org/", "article"),
            _r("CS50", "https://www.youtube.com/@cs50", "video"),
            _r("Computerphile", "https://www.youtube.com/@Computerphile", "video"),
        ),
    ),
    ResourceRule(
        ("machine learning", "deep learning"),
        (
            _r("Andrew Ng – ML Course", "https://www.coursera.org/learn/machine-learning", "course"),
            _r("fast.ai Practical Deep Learning", "https://course.fast.ai/", "course"),
            _r("StatQuest", "https://www.youtube.com/@statquest", "video"),
            _r("3Blue1Brown", "https://www.youtube.com/@3blue1brown", "video"),
        ),
    ),
    ResourceRule(
        ("data science", "ai"),
        (
            _r("Kaggle Learn", "https://www.kaggle.com/learn", "course"),
            _r("Google AI Education", "https://ai.google/education/", "course"),
            _r("StatQuest", "https://www.youtube.com/@statquest", "video"),
            _r("Data Science Dojo", "https://www.youtube.com/@DataScienceDojo", "video"),
        ),
    ),
    ResourceRule(
        ("history",),
        (
            _r("Khan Academy – History", "https://www.khanacademy.org/humanities/world-history", "course"),
            _r(*_CRASH_COURSE),
            _r("History.com", "https://www.history.com/", "article"),
            _r("Extra History", "https://www.youtube.com/@Extrahistory", "video"),
        ),
    ),
    ResourceRule(
        ("economics",),
        (
            _r("Khan Academy – Economics", "https://www.khanacademy.org/economics-finance-domain", "course"),
            _r(*_CRASH_COURSE),
            _r("Investopedia", "https://www.investopedia.com/", "article"),
            _r("Economics Explained", "https://www.youtube.com/@EconomicsExplained", "video"),
        ),
    ),
    ResourceRule(
        ("psychology",),
        (
            _r(*_CRASH_COURSE),
            _r("Simply Psychology", "https://www.simplypsychology.org/", "article"),
            _r(
                "Khan Academy – Health & Medicine",
                "https://www.khanacademy.org/science/health-and-medicine",
                "course",
            ),
            _r("The School of Life", "https://www.youtube.com/@theschooloflifetv", "video"),
        ),
    ),
    ResourceRule(
        ("english", "literature", "writing"),
        (
            _r("Khan Academy – Grammar", "https://www.khanacademy.org/humanities/grammar", "course"),
            _r("Purdue OWL", "https://owl.purdue.edu/", "article"),
            _r(*_CRASH_COURSE),
            _r("English with Lucy", "https://www.youtube.com/@EnglishwithLucy", "video"),
        ),
    ),
    ResourceRule(
        ("geography",),
        (
            _r("National Geographic Education", "https://education.nationalgeographic.org/", "article"),
            _r(*_CRASH_COURSE),
            _r("Khan Academy – World History", "https://www.khanacademy.org/humanities/world-history", "course"),
            _r("Geography Now", "https://www.youtube.com/@GeographyNow", "video"),
        ),
    ),
    ResourceRule(
        ("language", "spanish", "french", "german", "chinese", "japanese", "korean"),
        (
            _r("Duolingo", "https://www.duolingo.com/", "course"),
            _r("BBC Languages", "https://www.bbc.co.uk/languages", "article"),
            _r("Language Learning YouTube", "https://www.youtube.com/c/LanguageLearning", "video"),
            _r("Forvo Pronunciation", "https://forvo.com/", "tool"),
        ),
    ),
)

GENERIC_RESOURCES: Tuple[Resource, ...] = (
    _r("Khan Academy", "https://www.khanacademy.org/", "course"),
    _r(*_CRASH_COURSE),
    _r("Wikipedia", "https://en.wikipedia.org/wiki/Main_Page", "article"),
    _r("TED-Ed", "https://www.youtube.com/@TEDEd", "video"),
)


TOPIC_FAMILIES: Tuple[TopicFamily, ...] = (
    TopicFamily(
        ("math", "algebra", "calculus", "geometry", "statistics", "trigonometry"),
        {
            "beginner": (
                "Number Systems and Basic Operations",
                "Introduction to Algebraic Expressions",
                "Linear Equations and Inequalities",
                "Functions and Their Graphs",
                "Basic Geometric Concepts",
                "Introduction to Probability",
                "Problem-Solving Strategies",
                "Ratios, Proportions, and Percentages",
                "Order of Operations and Simplification",
                "Coordinate Plane and Plotting Points",
                "Fractions and Decimals Mastery",
                "Absolute Value and Number Line",
                "Patterns and Sequences Introduction",
                "Word Problems and Real-World Math",
            ),
            "intermediate": (
                "Quadratic Equations and Functions",
                "Systems of Equations",
                "Polynomials and Factoring",
                "Trigonometric Functions",
                "Exponential and Logarithmic Functions",
                "Sequences and Series",
                "Statistical Analysis Methods",
                "Matrices and Determinants",
                "Conic Sections (Circles, Ellipses, Parabolas)",
                "Rational Expressions and Equations",
                "Vectors and Vector Operations",
                "Combinatorics and Counting Principles",
                "Data Visualization and Interpretation",
                "Mathematical Induction and Proofs",
            ),
            "advanced": (
                "Calculus: Limits and Derivatives",
                "Integration Techniques",
                "Advanced Geometry Proofs",
                "Complex Numbers",
                "Differential Equations",
                "Advanced Probability Theory",
                "Mathematical Modeling Applications",
                "Multivariable Calculus",
                "Linear Algebra and Transformations",
                "Fourier Series and Transforms",
                "Numerical Methods and Approximation",
                "Optimization and Linear Programming",
                "Topology and Abstract Algebra Intro",
                "Real Analysis Foundations",
            ),
        },
    ),
    TopicFamily(
        (
            "program",
            "code",
            "javascript",
            "typescript",
            "python",
            "java",
            " php",
            "cpp",
            "golang",
            " rust",
            "ruby",
            " swift",
            "web",
            "development",
        ),
        {
            "beginner": (
                "Introduction to Programming Concepts",
                "Variables and Data Types",
                "Control Structures (if/else, loops)",
                "Functions and Methods",
                "Basic Data Structures (arrays, objects)",
                "Debugging Basics",
                "Simple Project Implementation",
                "String Manipulation and Formatting",
                "Input/Output and User Interaction",
                "Boolean Logic and Comparisons",
                "Scope and Variable Lifetime",
                "Basic Algorithms (sorting, searching)",
                "Code Organization and Readability",
                "Working with Libraries and Packages",
            ),
            "intermediate": (
                "Object-Oriented Programming",
                "Error Handling and Exceptions",
                "File I/O Operations",
                "Database Integration",
                "API Development Basics",
                "Testing Fundamentals",
                "Version Control with Git",
                "Regular Expressions and Text Processing",
                "Recursion and Dynamic Programming",
                "Data Serialization (JSON, XML)",
                "Authentication and Authorization",
                "Asynchronous Programming",
                "Memory Management and References",
                "Build Tools and Task Runners",
            ),
            "advanced": (
                "Design Patterns and Architecture",
                "Performance Optimization",
                "Security Best Practices",
                "Microservices and Distributed Systems",
                "Machine Learning Integration",
                "Cloud Deployment",
                "Advanced Project Management",
                "Concurrency and Parallelism",
                "System Design and Scalability",
                "CI/CD Pipelines and DevOps",
                "GraphQL and Advanced APIs",
                "Containerization with Docker",
                "Real-Time Applications (WebSockets)",
                "Open Source Contribution and Code Review",
            ),
        },
    ),
    TopicFamily(
        ("science", "physics", "chemistry", "biology", "laboratory", "experiment"),
        {
            "beginner": (
                "Scientific Method and Inquiry",
                "Basic Laboratory Safety",
                "Fundamental Concepts and Terminology",
                "Measurement and Data Collection",
                "Observation and Recording Skills",
                "Basic Experimental Design",
                "Scientific Communication",
                "Units, Conversions, and Dimensional Analysis",
                "Introduction to the Periodic Table",
                "Forces and Motion Basics",
                "Cell Structure and Function",
                "States of Matter and Phase Changes",
                "Energy Forms and Conservation",
                "Ecosystems and Food Chains",
            ),
            "intermediate": (
                "Advanced Laboratory Techniques",
                "Data Analysis and Interpretation",
                "Hypothesis Testing",
                "Scientific Modeling",
                "Research Methodology",
                "Literature Review Skills",
                "Experimental Controls and Variables",
                "Chemical Reactions and Stoichiometry",
                "Genetics and Heredity",
                "Waves, Sound, and Light",
                "Thermodynamics Principles",
                "Organic Chemistry Basics",
                "Human Anatomy and Physiology",
                "Electricity and Magnetism",
            ),
            "advanced": (
                "Advanced Research Design",
                "Statistical Analysis in Science",
                "Scientific Publication",
                "Peer Review Process",
                "Independent Research Projects",
                "Science Ethics and Integrity",
                "Cutting-Edge Developments",
                "Quantum Mechanics Introduction",
                "Molecular Biology and Biotechnology",
                "Astrophysics and Cosmology",
                "Environmental Science and Climate",
                "Nuclear Physics and Radioactivity",
                "Neuroscience Fundamentals",
                "Nanotechnology and Materials Science",
            ),
        },
    ),
    TopicFamily(
        ("language", "english", "writing", "literature", "grammar", "communication"),
        {
            "beginner": (
                "Basic Vocabulary and Phrases",
                "Grammar Fundamentals",
                "Sentence Structure",
                "Reading Comprehension Basics",
                "Writing Simple Paragraphs",
                "Listening and Speaking Practice",
                "Cultural Context Introduction",
                "Parts of Speech (Nouns, Verbs, Adjectives)",
                "Punctuation and Capitalization Rules",
                "Common Idioms and Expressions",
                "Tenses: Past, Present, and Future",
                "Descriptive Writing Techniques",
                "Active vs Passive Voice",
                "Everyday Conversation Practice",
            ),
            "intermediate": (
                "Complex Sentence Structures",
                "Essay Writing Techniques",
                "Literary Analysis Basics",
                "Advanced Vocabulary",
                "Public Speaking Skills",
                "Critical Reading",
                "Writing for Different Audiences",
                "Narrative and Storytelling Techniques",
                "Debate and Argumentation",
                "Poetry Analysis and Interpretation",
                "Formal vs Informal Register",
                "Research Skills and Citations",
                "Comparative Literature",
                "Media Literacy and Analysis",
            ),
            "advanced": (
                "Advanced Literary Analysis",
                "Creative Writing Techniques",
                "Research and Academic Writing",
                "Rhetoric and Persuasion",
                "Professional Communication",
                "Literary Theory and Criticism",
                "Publishing and Presentation",
                "Sociolinguistics and Language Variation",
                "Translation and Interpretation",
                "Screenwriting and Script Analysis",
                "Discourse Analysis",
                "Grant and Proposal Writing",
                "Editing and Proofreading Mastery",
                "Portfolio Development and Showcase",
            ),
        },
    ),
    TopicFamily(
        ("business", "economics", "finance", "marketing", "management", "accounting"),
        {
            "beginner": (
                "Business Fundamentals and Concepts",
                "Basic Economic Principles",
                "Introduction to Financial Statements",
                "Marketing Basics",
                "Management Principles",
                "Business Ethics",
                "Entrepreneurship Overview",
                "Supply and Demand Dynamics",
                "Bookkeeping and Basic Accounting",
                "Customer Relationship Management",
                "Business Communication Skills",
                "Introduction to E-Commerce",
                "Time Management for Professionals",
                "SWOT Analysis and Business Planning",
            ),
            "intermediate": (
                "Financial Analysis and Planning",
                "Market Research and Analysis",
                "Strategic Management",
                "Operations Management",
                "Business Law and Regulations",
                "International Business",
                "Project Management",
                "Digital Marketing and SEO",
                "Human Resource Management",
                "Cost Accounting and Budgeting",
                "Negotiation and Conflict Resolution",
                "Brand Strategy and Positioning",
                "Business Process Improvement",
                "Investment and Portfolio Basics",
            ),
            "advanced": (
                "Advanced Financial Modeling",
                "Global Economics and Trade",
                "Corporate Strategy",
                "Risk Management",
                "Business Analytics",
                "Mergers and Acquisitions",
                "Leadership Development",
                "Venture Capital and Fundraising",
                "Supply Chain Optimization",
                "Corporate Governance",
                "Behavioral Economics",
                "Crisis Management and Recovery",
                "Sustainability and CSR Strategy",
                "Executive Decision-Making Frameworks",
            ),
        },
    ),
)

# "{subject}" is substituted with the subject name.
DEFAULT_TOPIC_TEMPLATES: Mapping[str, Tuple[str, ...]] = {
    "beginner": (
        "Introduction to {subject}",
        "{subject}: Core Concepts and Terminology",
        "{subject}: Basic Principles and Theory",
        "{subject}: Fundamental Skills Development",
        "{subject}: Historical Context and Background",
        "{subject}: Essential Tools and Resources",
        "{subject}: Practical Applications Overview",
        "{subject}: Key Vocabulary and Definitions",
        "{subject}: Foundational Techniques",
        "{subject}: Beginner Exercises and Drills",
        "{subject}: Common Misconceptions",
        "{subject}: Study Methods and Note-Taking",
        "{subject}: Real-World Examples",
        "{subject}: Review and Self-Assessment",
    ),
    "intermediate": (
        "{subject}: Advanced Concepts and Theory",
        "{subject}: Applied Problem Solving",
        "{subject}: Complex Skill Development",
        "{subject}: Integration with Other Fields",
        "{subject}: Case Studies and Analysis",
        "{subject}: Best Practices and Standards",
        "{subject}: Project-Based Learning",
        "{subject}: Critical Thinking Applications",
        "{subject}: Comparative Analysis",
        "{subject}: Collaborative Learning",
        "{subject}: Research and Investigation",
        "{subject}: Practical Workshops",
        "{subject}: Intermediate Assessment",
        "{subject}: Connecting Theory to Practice",
    ),
    "advanced": (
        "{subject}: Expert-Level Techniques",
        "{subject}: Specialized Topics and Research",
        "{subject}: Professional Applications",
        "{subject}: Innovation and Development",
        "{subject}: Industry Trends and Future Directions",
        "{subject}: Advanced Project Work",
        "{subject}: Mastery and Specialization",
        "{subject}: Leadership in the Field",
        "{subject}: Peer Teaching and Mentoring",
        "{subject}: Portfolio and Capstone Project",
        "{subject}: Ethics and Responsibility",
        "{subject}: Cross-Disciplinary Applications",
        "{subject}: Independent Research",
        "{subject}: Final Review and Certification Prep",
    ),
}


def _doc(keyword: str, base: str, **topics: str) -> DocumentationEntry:
    return DocumentationEntry(keyword=keyword, base=base, topics=tuple(topics.items()))


# Order matters: the first keyword contained in the subject wins.
DOCUMENTATION: Tuple[DocumentationEntry, ...] = (
    _doc(
        "typescript",
        "https://www.typescriptlang.org/docs/handbook/intro.html",
        functions="https://www.typescriptlang.org/docs/handbook/2/functions.html",
        generics="https://www.typescriptlang.org/docs/handbook/2/generics.html",
        types="https://www.typescriptlang.org/docs/handbook/2/everyday-types.html",
    ),
    _doc("javascript", "https://developer.mozilla.org/en-US/docs/Web/JavaScript/Guide"),
    _doc(
        "react",
        "https://react.dev/learn",
        hooks="https://react.dev/reference/react/hooks",
        components="https://react.dev/learn/your-first-component",
        state="https://react.dev/learn/state-a-components-memory",
    ),
    _doc("next", "https://nextjs.org/docs"),
    _doc("vue", "https://vuejs.org/guide/introduction.html"),
    _doc("nuxt", "https://nuxt.com/docs/getting-started/introduction"),
    _doc("angular", "https://angular.dev/tutorials/learn-angular"),
    _doc("svelte", "https://svelte.dev/docs"),
    _doc("node", "https://nodejs.org/en/docs"),
    _doc("express", "https://expressjs.com/en/guide/routing.html"),
    _doc("python", "https://docs.python.org/3/tutorial/"),
    _doc("django", "https://docs.djangoproject.com/en/stable/"),
    _doc("flask", "https://flask.palletsprojects.com/en/latest/"),
    _doc("java", "https://docs.oracle.com/javase/tutorial/"),
    _doc("spring", "https://docs.spring.io/spring-boot/docs/current/reference/htmlsingle/"),
    _doc("c#", "https://learn.microsoft.com/en-us/dotnet/csharp/"),
    _doc("dotnet", "https://learn.microsoft.com/en-us/dotnet/"),
    _doc("php", "https://www.php.net/manual/en/"),
    _doc("laravel", "https://laravel.com/docs"),
    _doc("symfony", "https://symfony.com/doc/current/index.html"),
    _doc("ruby", "https://ruby-doc.org/core/"),
    _doc("rails", "https://guides.rubyonrails.org/"),
    _doc("go", "https://go.dev/doc/"),
    _doc("rust", "https://doc.rust-lang.org/book/"),
    _doc("swift", "https://docs.swift.org/swift-book/"),
    _doc("kotlin", "https://kotlinlang.org/docs/home.html"),
    _doc("docker", "https://docs.docker.com/guides/"),
    _doc("kubernetes", "https://kubernetes.io/docs/home/"),
    _doc("git", "https://git-scm.com/docs"),
    _doc("science", "https://www.sciencedaily.com/"),
    _doc("mathematics", "https://www.khanacademy.org/math"),
    _doc("math", "https://www.khanacademy.org/math"),
    _doc("biology", "https://www.khanacademy.org/science/biology"),
    _doc("physics", "https://www.khanacademy.org/science/physics"),
    _doc("chemistry", "https://www.khanacademy.org/science/chemistry"),
    _doc("sql", "https://www.w3schools.com/sql/"),
    _doc("database", "https://www.w3schools.com/sql/"),
    _doc("css", "https://developer.mozilla.org/en-US/docs/Web/CSS"),
    _doc("html", "https://developer.mozilla.org/en-US/docs/Web/HTML"),
    _doc("tailwind", "https://tailwindcss.com/docs"),
    _doc("aws", "https://docs.aws.amazon.com/"),
    _doc("azure", "https://learn.microsoft.com/en-us/azure/"),
    _doc("accounting", "https://www.investopedia.com/terms/a/accounting.asp"),
    _doc("economics", "https://www.khanacademy.org/economics-finance-domain"),
)

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _SLUG_PATTERN.sub("-", value.lower()).strip("-")


@dataclass(frozen=True)
class ResourceCatalog:
    """Keyword-driven lookup of fallback resources, topic tiers, and documentation URLs."""

    subject_resources: Tuple[ResourceRule, ...] = SUBJECT_RESOURCES
    generic_resources: Tuple[Resource, ...] = GENERIC_RESOURCES
    topic_families: Tuple[TopicFamily, ...] = TOPIC_FAMILIES
    default_topic_templates: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: DEFAULT_TOPIC_TEMPLATES
    )
    documentation: Tuple[DocumentationEntry, ...] = DOCUMENTATION
    default_documentation_url: str = DEFAULT_DOCUMENTATION_URL
    video_search_base: str = VIDEO_SEARCH_BASE
    web_search_base: str = WEB_SEARCH_BASE

    def resources_for(self, subject: str) -> List[Resource]:
        """Fallback session resources; first keyword rule contained in the subject wins."""
        name = subject.lower()
        for rule in self.subject_resources:
            if any(keyword in name for keyword in rule.keywords):
                return [resource.model_copy() for resource in rule.resources]
        return [resource.model_copy() for resource in self.generic_resources]

    def topic_tiers(self, subject: str) -> Dict[str, List[str]]:
        name = subject.lower()
        for family in self.topic_families:
            if any(keyword in name for keyword in family.keywords):
                return {level: list(family.tiers.get(level, ())) for level in LEVELS}
        return {
            level: [template.format(subject=subject) for template in self.default_topic_templates.get(level, ())]
            for level in LEVELS
        }

    def tier_topics(self, subject: str, level: str) -> List[str]:
        tiers = self.topic_tiers(subject)
        return tiers.get(level) or tiers.get("beginner") or []

    def default_key_topics(self, subject: str, topic: str) -> List[str]:
        beginner = self.topic_tiers(subject).get("beginner") or []
        if beginner:
            return beginner[:3]
        base = topic if topic.strip() else subject
        return [f"{base} overview", f"{subject} core principles", f"{subject} practice exercises"]

    def documentation_url(self, subject: str, topic: str = "") -> str:
        subject_key = subject.lower()
        topic_key = slugify(topic)
        for entry in self.documentation:
            if entry.keyword in subject_key:
                for match, url in entry.topics:
                    if match in topic_key:
                        return url
                return entry.base
        return self.default_documentation_url

    def video_search_url(self, subject: str, topic: str) -> str:
        return self.video_search_base + quote_plus(f"{subject} {topic} tutorial")

    def web_search_url(self, query: str) -> str:
        return self.web_search_base + quote_plus(query.strip())

    def curriculum_resources(self, subject: str, topic: str) -> List[Resource]:
        """Default video plus documentation pair for one curriculum day."""
        return [
            Resource(
                title=f"{subject} - Video Overview",
                url=self.video_search_url(subject, topic),
                type="video",
            ),
            Resource(
                title=f"{subject} Official Docs",
                url=self.documentation_url(subject, topic),
                type="article",
            ),
        ]

    def video_guide(self, subject: str, topic: str) -> Resource:
        return Resource(title=f"{subject} - Video Guide", url=self.video_search_url(subject, topic), type="video")

    def documentation_resource(self, subject: str, topic: str) -> Resource:
        return Resource(
            title=f"{subject} Documentation",
            url=self.documentation_url(subject, topic),
            type="article",
        )


@lru_cache
def default_catalog() -> ResourceCatalog:
    return ResourceCatalog()


def resolve_catalog(catalog: Optional[ResourceCatalog]) -> ResourceCatalog:
    return catalog if catalog is not None else default_catalog()


__all__ = [
    "DocumentationEntry",
    "ResourceCatalog",
    "ResourceRule",
    "TopicFamily",
    "default_catalog",
    "resolve_catalog",
    "slugify",
]
