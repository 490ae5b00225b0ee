"""JavaScript executed in the page by WebApplication.

Scripts are W3C function bodies: inputs arrive in `arguments`, async
scripts receive their completion callback as the last argument and report
failures by passing an error string to it (null on success).
"""

_FIND_BY_XPATH = """
function getElementByXPath(xpath) {
    var found = document.evaluate(xpath, document, null,
        XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null);
    return found.snapshotLength > 0 ? found.snapshotItem(0) : null;
}
"""

DOCUMENT_READY = "return document.readyState === 'complete';"

USER_AGENT = 'return window.navigator && window.navigator.userAgent;'

HIGHLIGHT = """
window.postMessage({type: 'CLEAR_HIGHLIGHTS'}, '*');
if (arguments[0]) {
    window.postMessage({type: 'ADD_XPATH_HIGHLIGHT', xpath: arguments[0]}, '*');
}
"""

# args: xpath, topOffset, leftOffset, onlyIfNeeded, done
SCROLL_INTO_VIEW = _FIND_BY_XPATH + """
var xpath = arguments[0], topOffset = arguments[1], leftOffset = arguments[2];
var onlyIfNeeded = arguments[3];
var done = arguments[arguments.length - 1];

function getScrollableParent(el) {
    while (el && el !== document.body && el !== document.scrollingElement) {
        if (el.scrollHeight > el.clientHeight
            && window.getComputedStyle(el).overflowY.indexOf('hidden') === -1) {
            return el;
        }
        el = el.parentNode;
    }
    return document.scrollingElement || document.body;
}

try {
    var element = getElementByXPath(xpath);
    if (!element) {
        done('Element not found ' + xpath);
    } else {
        if (onlyIfNeeded && element.scrollIntoViewIfNeeded) {
            element.scrollIntoViewIfNeeded();
        } else if (onlyIfNeeded) {
            element.scrollIntoView({block: 'nearest', inline: 'nearest'});
        } else {
            element.scrollIntoView();
        }
        if (topOffset || leftOffset) {
            getScrollableParent(element.parentNode).scrollBy(leftOffset, topOffset);
        }
        setTimeout(function () { done(null); }, 200);
    }
} catch (err) {
    done(err.message + ' ' + xpath);
}
"""

# args: xpath, property name
OPTIONS_PROPERTY = _FIND_BY_XPATH + """
var xpath = arguments[0], prop = arguments[1];
var element = getElementByXPath(xpath);
if (!element || element.tagName.toLowerCase() !== 'select') {
    throw new Error('Element not found ' + xpath);
}
var values = [];
for (var i = 0; i < element.options.length; i++) {
    values.push(element.options[i][prop]);
}
return values;
"""

# args: xpath, value, done
FIELD_CHANGE = _FIND_BY_XPATH + """
var xpath = arguments[0], value = arguments[1];
var done = arguments[arguments.length - 1];
var textTypes = ['color', 'date', 'datetime', 'datetime-local', 'email', 'month',
    'number', 'password', 'range', 'search', 'tel', 'text', 'time', 'url', 'week'];

function isTextNode(el) {
    var name = el.nodeName.toLowerCase();
    return name === 'textarea'
        || (name === 'input' && textTypes.indexOf(el.getAttribute('type')) !== -1);
}

function fire(el, type) {
    el.dispatchEvent(new CustomEvent(type, {bubbles: true, cancelable: true}));
}

function backspace(el, type) {
    var event = new KeyboardEvent(type, {bubbles: true, cancelable: true, key: 'Backspace'});
    // Chromium keeps keyCode/which at 0 for synthetic events
    Object.defineProperty(event, 'keyCode', {get: function () { return 8; }});
    Object.defineProperty(event, 'which', {get: function () { return 8; }});
    el.dispatchEvent(event);
}

try {
    var el = getElementByXPath(xpath);
    if (!el) {
        throw new Error('Element ' + xpath + ' not found.');
    }
    el.focus();
    if (isTextNode(el)) {
        backspace(el, 'keydown');
        backspace(el, 'keypress');
        backspace(el, 'keyup');
    }
    el.value = value;
    fire(el, 'input');
    fire(el, 'change');
    done(null);
} catch (e) {
    done(e.message + ' ' + xpath);
}
"""
