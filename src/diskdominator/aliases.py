from diskdominator.core.models import DetectionMethod, GroupingMethod, SelectionStrategy
from diskdominator.organize.models import CollisionPolicy

METHOD_ALIASES = {
    "hash": DetectionMethod.HASH,
    "name": DetectionMethod.NAME,
    "size": DetectionMethod.SIZE,
    "name-and-size": DetectionMethod.NAME_AND_SIZE,
}

METHOD_CHOICES = list(METHOD_ALIASES.keys())

METHOD_HELP_TEXT = (
    "Identity used to decide that files are duplicates:\n"
    "  hash          : Same content (xxHash64 of the whole file)\n"
    "  name          : Same file name after fuzzy normalization\n"
    "  size          : Same size in bytes\n"
    "  name-and-size : Same normalized name and same size\n"
    "Example       : %(prog)s -i ~/Downloads --method name-and-size -m 500K\n"
)

GROUP_BY_ALIASES = {
    "hash": GroupingMethod.HASH,
    "name": GroupingMethod.NAME,
    "type": GroupingMethod.TYPE,
    "location": GroupingMethod.LOCATION,
}

GROUP_BY_CHOICES = list(GROUP_BY_ALIASES.keys())

GROUP_BY_HELP_TEXT = (
    "Order of the reported groups:\n"
    "  hash     : By identity key\n"
    "  name     : By file name\n"
    "  type     : By file category (image, video, ...), then name\n"
    "  location : By disk and path of the kept file\n"
)

COLLISION_ALIASES = {
    "default": CollisionPolicy.DEFAULT,
    "uniquify": CollisionPolicy.UNIQUIFY,
    "reject": CollisionPolicy.REJECT,
}

COLLISION_CHOICES = list(COLLISION_ALIASES.keys())

COLLISION_HELP_TEXT = (
    "What to do when two operations target the same destination:\n"
    "  default  : Rename move/copy targets to 'name (1).ext', reject renames\n"
    "  uniquify : Rename every colliding target\n"
    "  reject   : Refuse the plan\n"
)

STRATEGY_ALIASES = {
    "newest": SelectionStrategy.KEEP_NEWEST,
    "oldest": SelectionStrategy.KEEP_OLDEST,
    "organized": SelectionStrategy.KEEP_IN_ORGANIZED,
}

STRATEGY_CHOICES = ["original"] + list(STRATEGY_ALIASES.keys())

STRATEGY_HELP_TEXT = (
    "Which member of every group is kept:\n"
    "  original  : Not in temp/backup, oldest, organized location, shallowest path\n"
    "  newest    : Most recently modified copy\n"
    "  oldest    : Earliest created copy\n"
    "  organized : Copies under Documents/Pictures/... beat Downloads/Temp/...\n"
)

EPILOG_TEXT = """
Examples:
  Find duplicate files in Downloads
  %(prog)s duplicates -i ~/Downloads

  Filter by size and extensions, show groups ordered by type
  %(prog)s duplicates -i ~/Downloads ~/Pictures -m 500KB -M 10GB -x .jpg .png --group-by type

  Same as above + move redundant copies to trash (with confirmation prompt)
  %(prog)s duplicates -i ~/Downloads ~/Pictures -m 500KB -x .jpg .png --keep-one

  Preview an organization plan built from a rules file
  %(prog)s organize -i ~/Downloads --rules rules.json --preview

  Execute it (files deleted by rules are backed up so a failure rolls everything back)
  %(prog)s organize -i ~/Downloads --rules rules.json
"""
