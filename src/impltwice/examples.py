"""
Example invocations for demos and tests.

WRAPPED_SLICE is the motivating case: an immutable and a mutable wrapper
around a slice that share their read-only methods.
"""
from impltwice.model import Body, GenericParam, SharedSpec, TypeExpr


WRAPPED_SLICE = """\
impl<T> WrappedSlice<'_, T>, WrappedSliceMut<'_, T> {
    pub fn inner(&self) -> &'_ [T] {
        self.0
    }

    pub fn get(&self, index: usize) -> Option<&'_ T> {
        self.0.get(index)
    }
}
"""

DEBUG_TRAIT = """\
impl<T>
    Debug for Borrowed<'_, T>,
    Debug for BorrowedMut<'_, T>,
    Debug for Owned<T>
where (T: Debug) {
    fn fmt(&self, f: &mut Formatter<'_>) -> Result {
        write!(f, "[{:?}]", self.0)
    }
}
"""

PER_HEADER_GENERICS = """\
impl<A, B> Complex<A, B> where (A: Clone, B: Clone)
impl<T> Simple<T> where (T: Clone) {
    fn redundant_clone_method_for_example_purposes(&self) -> Self {
        self.clone()
    }
}
"""

SOURCE_FILE = """\
struct WrappedSlice<'a, T>(&'a [T]);
struct WrappedSliceMut<'a, T>(&'a mut [T]);

impl_twice!(
    impl<T> WrappedSlice<'_, T>, WrappedSliceMut<'_, T> {
        pub fn len(&self) -> usize {
            self.0.len()
        }
    }
);

impl<T> WrappedSliceMut<'_, T> {
    pub fn get_mut(&mut self, index: usize) -> Option<&'_ mut T> {
        self.0.get_mut(index)
    }
}
"""


def build_example_spec() -> SharedSpec:
    """Build the WRAPPED_SLICE spec by hand, without the parser."""
    body_text = "\n    pub fn len(&self) -> usize {\n        self.0.len()\n    }\n"
    body_tokens = (
        "pub", "fn", "len", "(", "&", "self", ")", "->", "usize", "{",
        "self", ".", "0", ".", "len", "(", ")", "}",
    )
    return SharedSpec(
        generics=(GenericParam("T"),),
        trait_ref=None,
        targets=(
            TypeExpr(("WrappedSlice", "<", "'_", ",", "T", ">")),
            TypeExpr(("WrappedSliceMut", "<", "'_", ",", "T", ">")),
        ),
        body=Body(text=body_text, tokens=body_tokens),
    )


__all__ = [
    "WRAPPED_SLICE",
    "DEBUG_TRAIT",
    "PER_HEADER_GENERICS",
    "SOURCE_FILE",
    "build_example_spec",
]
