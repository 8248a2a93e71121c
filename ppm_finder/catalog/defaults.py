"""Default criteria shipped with the tool finder."""

from ppm_finder.catalog.models import Criterion

DEFAULT_CRITERIA = (
    Criterion(
        id="scalability",
        name="Scalability",
        description="How well the tool handles increasing project size and complexity",
    ),
    Criterion(
        id="integrations",
        name="Integrations & Extensibility",
        description="Ability to connect with other tools and extend functionality",
    ),
    Criterion(
        id="easeOfUse",
        name="Ease of Use",
        description="How intuitive and user-friendly the tool interface is",
    ),
    Criterion(
        id="flexibility",
        name="Flexibility & Customization",
        description="How adaptable the tool is to different workflows and requirements",
    ),
    Criterion(
        id="ppmFeatures",
        name="Portfolio Management",
        description="Advanced features for managing multiple projects and resources",
    ),
    Criterion(
        id="reporting",
        name="Reporting & Analytics",
        description="Quality and depth of data visualization and analysis capabilities",
    ),
    Criterion(
        id="security",
        name="Security & Compliance",
        description="Data protection, access controls, and regulatory compliance features",
    ),
)
