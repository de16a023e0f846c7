"""Theme definitions for the TUI.

This module hides the design decisions about:
- Color palettes and visual appearance
- Theme variables (borders, scrollbars, etc.)

To add a new theme, define it here and register it in ChatApp.on_mount.
"""

from textual.theme import Theme

# Dark palette built on Catppuccin Mocha, with Gemini blue as the main accent
GEMINI_NIGHT = Theme(
    name="gemini-night",
    primary="#8ab4f8",      # Gemini blue
    secondary="#cba6f7",    # Mauve - assistant messages
    accent="#f9e2af",       # Gold - highlights
    foreground="#cdd6f4",
    background="#11111b",
    success="#a6e3a1",      # Green - user messages, send button
    warning="#fab387",      # Peach - log panel
    error="#f38ba8",        # Red - error banner
    surface="#1e1e2e",
    panel="#181825",
    dark=True,
    variables={
        "block-cursor-foreground": "#11111b",
        "block-cursor-background": "#f5e0dc",
        "input-cursor-background": "#cdd6f4",
        "input-cursor-foreground": "#11111b",
        "input-selection-background": "#8ab4f8 30%",
        "border": "#45475a",
        "border-blurred": "#313244",
        "scrollbar": "#313244",
        "scrollbar-hover": "#45475a",
        "scrollbar-active": "#8ab4f8",
        "scrollbar-background": "#181825",
        "footer-key-foreground": "#f9e2af",
        "footer-background": "#11111b",
        "text-muted": "#6c7086",
        "text-disabled": "#45475a",
    },
)
