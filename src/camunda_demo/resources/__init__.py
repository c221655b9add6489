"""BPMN process definitions bundled with the demo."""
