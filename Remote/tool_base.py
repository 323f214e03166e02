from typing import Dict, Any, Tuple

from Tools.tool_base import Tool


class RemoteTool(Tool):
    """Base class for tools that act on a remote host."""

    # Configuration scope within settings.yaml (e.g., ("install", "tomcat"))
    config_path: Tuple[str, ...] = ()

    def get_config(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        section: Any = settings
        for key in self.config_path:
            if not isinstance(section, dict):
                return {}
            section = section.get(key, {})
        return section if isinstance(section, dict) else {}
