"""
app/keyboard/shortcuts.py
-------------------------
Shortcut reference shown by the help overlay (the `?` key).
Keep in step with app/keyboard/dispatcher.py.
"""

POS_SHORTCUTS = {
    'global': [
        {'key': 'F1',      'action': 'Focus product search'},
        {'key': 'F2',      'action': 'Jump to cart'},
        {'key': 'F4',      'action': 'Hold sale'},
        {'key': 'F8',      'action': 'Resume held sale'},
        {'key': 'F9',      'action': 'Pay'},
        {'key': 'Esc',     'action': 'Cancel / Close'},
        {'key': 'Ctrl+L',  'action': 'Logout'},
        {'key': 'Ctrl+F',  'action': 'Search products'},
        {'key': '?',       'action': 'Show shortcuts'},
    ],
    'products': [
        {'key': '← → ↑ ↓',  'action': 'Navigate products'},
        {'key': 'Enter',    'action': 'Add to cart'},
        {'key': 'Tab',      'action': 'Toggle Retail/Wholesale'},
        {'key': '1-9',      'action': 'Add with quantity'},
        {'key': 'Home/End', 'action': 'First/Last product'},
    ],
    'cart': [
        {'key': '↑ ↓',      'action': 'Navigate items'},
        {'key': '+',        'action': 'Increase quantity'},
        {'key': '-',        'action': 'Decrease quantity'},
        {'key': 'Delete',   'action': 'Remove item'},
        {'key': 'Ctrl+Del', 'action': 'Clear cart'},
        {'key': 'Enter',    'action': 'Increase quantity'},
    ],
    'payment': [
        {'key': 'F9',     'action': 'Open payment'},
        {'key': 'Ctrl+P', 'action': 'Print receipt'},
        {'key': 'Ctrl+R', 'action': 'Return'},
        {'key': 'Ctrl+E', 'action': 'Exchange'},
        {'key': 'Ctrl+D', 'action': 'Damage'},
    ],
}


def shortcut_sections() -> list:
    """[(section, [{'key':…, 'action':…}, …]), …] in display order."""
    return [(name, list(rows)) for name, rows in POS_SHORTCUTS.items()]
