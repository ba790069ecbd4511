"""
In-page extraction scripts.

Each script runs inside the rendered page and returns plain JSON-compatible
data; no element handles leave the browser. Resource URLs are resolved
against the page location so relative references are probed correctly.
"""

RESOLVE_HELPER = """
const resolve = (value) => {
    if (!value || value.trim() === '') return '';
    try { return new URL(value, window.location.href).toString(); } catch { return value; }
};
"""

IMAGES = (
    """(imgs) => {"""
    + RESOLVE_HELPER
    + """
    return imgs.map((img, index) => {
        const rect = img.getBoundingClientRect();
        const style = window.getComputedStyle(img);
        const role = img.getAttribute('role');
        return {
            index,
            src: resolve(img.getAttribute('src')),
            alt: img.getAttribute('alt') || '',
            title: img.getAttribute('title') || '',
            loading: img.getAttribute('loading') || '',
            width: img.getAttribute('width'),
            height: img.getAttribute('height'),
            renderedWidth: img.clientWidth,
            renderedHeight: img.clientHeight,
            naturalWidth: img.naturalWidth,
            naturalHeight: img.naturalHeight,
            complete: img.complete,
            isLinked: !!img.closest('a'),
            isAboveFold: rect.top < window.innerHeight,
            isVisible: style.display !== 'none' && style.visibility !== 'hidden',
            hasDecorativeRole: role === 'presentation' || role === 'none',
            srcset: img.getAttribute('srcset') || '',
            sizes: img.getAttribute('sizes') || '',
        };
    });
}"""
)

MEDIA = (
    """(elements) => {"""
    + RESOLVE_HELPER
    + """
    return elements.map((element, index) => ({
        index,
        src: resolve(element.getAttribute('src')),
        sources: Array.from(element.querySelectorAll('source'))
            .map((source) => resolve(source.getAttribute('src')))
            .filter(Boolean),
        outerHTML: element.outerHTML.substring(0, 200),
    }));
}"""
)

IFRAMES = (
    """(iframes) => {"""
    + RESOLVE_HELPER
    + """
    return iframes.map((iframe, index) => {
        const rect = iframe.getBoundingClientRect();
        const style = window.getComputedStyle(iframe);
        return {
            index,
            src: resolve(iframe.getAttribute('src')),
            srcdoc: iframe.getAttribute('srcdoc') || '',
            sandbox: iframe.hasAttribute('sandbox') ? iframe.getAttribute('sandbox') : null,
            loading: iframe.getAttribute('loading') || '',
            title: iframe.getAttribute('title') || '',
            name: iframe.getAttribute('name') || '',
            width: iframe.getAttribute('width'),
            height: iframe.getAttribute('height'),
            renderedWidth: iframe.clientWidth,
            renderedHeight: iframe.clientHeight,
            isVisible: style.display !== 'none' && style.visibility !== 'hidden',
            isAboveFold: rect.top < window.innerHeight,
            allowFullscreen: iframe.hasAttribute('allowfullscreen'),
            referrerPolicy: iframe.getAttribute('referrerpolicy') || '',
            frameBorder: iframe.getAttribute('frameborder') || '',
        };
    });
}"""
)

STYLESHEETS = (
    """(links) => {"""
    + RESOLVE_HELPER
    + """
    return links.map((link, index) => ({
        index,
        href: resolve(link.getAttribute('href')),
        media: link.getAttribute('media') || '',
        type: link.getAttribute('type') || '',
        crossorigin: link.getAttribute('crossorigin') || '',
        integrity: link.getAttribute('integrity') || '',
        disabled: link.hasAttribute('disabled'),
    }));
}"""
)

SCRIPTS = (
    """(scripts) => {"""
    + RESOLVE_HELPER
    + """
    return scripts.map((script, index) => ({
        index,
        src: resolve(script.getAttribute('src')),
        type: script.getAttribute('type') || '',
        async: script.hasAttribute('async'),
        defer: script.hasAttribute('defer'),
        crossorigin: script.getAttribute('crossorigin') || '',
    }));
}"""
)

LINKS = (
    """(anchors) => {"""
    + RESOLVE_HELPER
    + """
    const links = anchors.map((anchor) => resolve(anchor.getAttribute('href'))).filter(Boolean);
    return links.filter((link, index) => links.indexOf(link) === index);
}"""
)

NAVIGATION_TIMING = """() => {
    const navigation = performance.getEntriesByType('navigation')[0];
    if (!navigation) {
        return {domContentLoaded: 0, pageLoadComplete: 0, timeToFirstByte: 0};
    }
    return {
        domContentLoaded: Math.round(navigation.domContentLoadedEventEnd - navigation.fetchStart),
        pageLoadComplete: Math.round(navigation.loadEventEnd - navigation.fetchStart),
        timeToFirstByte: Math.round(navigation.responseStart - navigation.fetchStart),
    };
}"""

ELEMENT_COUNTS = """() => ({
    domElements: document.querySelectorAll('*').length,
    images: document.querySelectorAll('img').length,
    scripts: document.querySelectorAll('script').length,
    stylesheets: document.querySelectorAll('link[rel="stylesheet"]').length,
})"""

INLINE_STYLE_COUNT = """() => document.querySelectorAll('[style]').length"""

CSS_RESOURCE_TIMING = """() => {
    const resources = performance.getEntriesByType('resource')
        .filter((resource) => resource.name.includes('.css') || resource.initiatorType === 'css');
    return {
        cssCount: resources.length,
        totalLoadTime: resources.reduce((total, resource) => total + (resource.responseEnd - resource.startTime), 0),
    };
}"""
